"""加速度采样适配器。"""

from .base import SampleSink, SampleSource, SensorUnavailable
from .sensor import AccelerometerDriver, IIOAccelerometer, RealSensorBackend
from .simulated import SimulatedBackend

__all__ = [
    "AccelerometerDriver",
    "IIOAccelerometer",
    "RealSensorBackend",
    "SampleSink",
    "SampleSource",
    "SensorUnavailable",
    "SimulatedBackend",
]
