"""基于加速度计的计步服务。"""

from .service import StepTrackingService, TrackingMode

__all__ = [
    "StepTrackingService",
    "TrackingMode",
]
