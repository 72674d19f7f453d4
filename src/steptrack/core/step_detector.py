"""基于峰谷滞回的计步检测器。"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import Optional

from steptrack.core.models import Sample, StepEvent

HORIZONTAL_WEIGHT = 0.5
VERTICAL_WEIGHT = 2.0


def weighted_magnitude(previous: Sample, current: Sample) -> float:
    """相邻两次读数差值的加权模长，竖直方向（y 轴）权重更高。"""

    dx = current.x - previous.x
    dy = current.y - previous.y
    dz = current.z - previous.z
    return math.sqrt(
        dx * dx * HORIZONTAL_WEIGHT
        + dy * dy * VERTICAL_WEIGHT
        + dz * dz * HORIZONTAL_WEIGHT
    )


@dataclass
class DetectorState:
    """检测器内部状态，启动或停止时重置。"""

    last_sample: Optional[Sample] = None
    last_magnitude: float = 0.0
    in_step: bool = False
    last_step_timestamp: Optional[float] = None


class StepDetector:
    """将加速度序列转换为离散步伐事件。

    状态机只有 Idle 与 Rising 两个状态：幅值越过阈值且仍在上升时进入
    Rising，回落到 `threshold * hysteresis_factor` 以下时产生候选步伐。
    候选步伐与上一次确认步伐的间隔不足 `min_step_interval` 时直接丢弃。
    """

    def __init__(
        self,
        threshold: float = 1.2,
        hysteresis_factor: float = 0.6,
        min_step_interval: float = 0.3,
    ) -> None:
        if threshold <= 0:
            raise ValueError("threshold 必须为正数")
        if not 0 < hysteresis_factor <= 1:
            raise ValueError("hysteresis_factor 必须位于 (0, 1] 区间")
        if min_step_interval < 0:
            raise ValueError("min_step_interval 不能为负数")
        self.threshold = threshold
        self.hysteresis_factor = hysteresis_factor
        self.min_step_interval = min_step_interval
        self._state = DetectorState()

    @property
    def state(self) -> DetectorState:
        return self._state

    @property
    def release_threshold(self) -> float:
        return self.threshold * self.hysteresis_factor

    def reset(self) -> None:
        self._state = DetectorState()

    def observe(self, sample: Sample, timestamp: Optional[float] = None) -> Optional[StepEvent]:
        """处理一次读数，最多返回一个步伐事件。"""

        if timestamp is None:
            timestamp = time.monotonic()

        previous = self._state.last_sample
        self._state.last_sample = sample
        if previous is None:
            return None

        return self.observe_magnitude(weighted_magnitude(previous, sample), timestamp)

    def observe_magnitude(self, magnitude: float, timestamp: float) -> Optional[StepEvent]:
        """直接以幅值驱动状态机。"""

        state = self._state
        event: Optional[StepEvent] = None

        if not state.in_step:
            if magnitude > self.threshold and magnitude > state.last_magnitude:
                state.in_step = True
        elif magnitude < self.release_threshold:
            state.in_step = False
            if (
                state.last_step_timestamp is None
                or timestamp - state.last_step_timestamp >= self.min_step_interval
            ):
                state.last_step_timestamp = timestamp
                event = StepEvent(timestamp=timestamp, magnitude=magnitude)

        state.last_magnitude = magnitude
        return event
