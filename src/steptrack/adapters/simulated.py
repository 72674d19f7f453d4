"""模拟采样后端，传感器不可用时使用。"""

from __future__ import annotations

from steptrack.adapters.base import SampleSink, SampleSource
from steptrack.core.models import Sample


class SimulatedBackend(SampleSource):
    """每个周期生成一段合成步态波形，恰好触发一次步伐。

    波形为 静止 -> 抬起 -> 保持：抬起时竖直方向的跳变越过检测阈值，
    保持时幅值回落为 0，完成一次峰谷。
    """

    thread_name = "steptrack-simulation"

    def __init__(self, sink: SampleSink, interval: float = 2.0, amplitude: float = 1.2) -> None:
        super().__init__(sink, interval=interval)
        self._amplitude = amplitude

    @property
    def amplitude(self) -> float:
        return self._amplitude

    def waveform(self) -> list[Sample]:
        lifted = Sample(x=0.0, y=self._amplitude, z=0.0)
        return [Sample(x=0.0, y=0.0, z=0.0), lifted, lifted]

    def _tick(self) -> None:
        for sample in self.waveform():
            self.emit(sample)
