"""核心业务逻辑：计步检测、聚合、历史与推送。"""

from .aggregator import InvalidGoal, StepAggregator
from .history import HistoryStore, HistorySummary, summarize_history
from .models import DailySnapshot, HistoryRecord, ProgressLevel, Sample, StepEvent, percent_complete
from .publisher import SnapshotPublisher, Subscription
from .step_detector import DetectorState, StepDetector, weighted_magnitude

__all__ = [
    "DailySnapshot",
    "DetectorState",
    "HistoryRecord",
    "HistoryStore",
    "HistorySummary",
    "InvalidGoal",
    "ProgressLevel",
    "Sample",
    "SnapshotPublisher",
    "StepAggregator",
    "StepDetector",
    "StepEvent",
    "Subscription",
    "percent_complete",
    "summarize_history",
    "weighted_magnitude",
]
