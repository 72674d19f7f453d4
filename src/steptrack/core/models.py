"""计步核心的数据结构。"""

from __future__ import annotations

import datetime as dt
import math
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Dict


@dataclass(frozen=True)
class Sample:
    """单次三轴加速度读数。"""

    x: float
    y: float
    z: float


@dataclass(frozen=True)
class StepEvent:
    """检测器确认的一步。"""

    timestamp: float
    magnitude: float


class ProgressLevel(Enum):
    """当日目标完成程度。"""

    GETTING_STARTED = auto()
    HALFWAY = auto()
    GOAL_REACHED = auto()


def round_half_up(value: float) -> int:
    """四舍五入到整数，.5 一律向上进位。"""

    return math.floor(value + 0.5)


def percent_complete(count: int, goal: int) -> int:
    """完成百分比，超过目标时仍封顶为 100。"""

    if goal <= 0:
        return 0
    return min(round_half_up(count / goal * 100), 100)


@dataclass(frozen=True)
class DailySnapshot:
    """当日步数快照，同时用作历史记录中的单日条目。"""

    count: int
    goal: int
    timestamp: float
    date: dt.date

    @property
    def percent_complete(self) -> int:
        return percent_complete(self.count, self.goal)

    @property
    def progress_level(self) -> ProgressLevel:
        if self.count < self.goal / 2:
            return ProgressLevel.GETTING_STARTED
        if self.count < self.goal:
            return ProgressLevel.HALFWAY
        return ProgressLevel.GOAL_REACHED

    def to_dict(self) -> Dict[str, Any]:
        """持久化格式：时间戳为毫秒，日期为 `YYYY-MM-DD`。"""

        return {
            "count": self.count,
            "goal": self.goal,
            "timestamp": int(self.timestamp * 1000),
            "date": self.date.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DailySnapshot":
        """从持久化数据还原，字段缺失或非法时抛出 `ValueError`。"""

        try:
            count = int(data["count"])
            goal = int(data["goal"])
            timestamp = float(data.get("timestamp", 0)) / 1000.0
            date = dt.date.fromisoformat(str(data["date"]))
        except (KeyError, TypeError, ValueError) as exc:
            raise ValueError(f"无效的步数记录: {data!r}") from exc
        if count < 0 or goal <= 0:
            raise ValueError(f"无效的步数记录: {data!r}")
        return cls(count=count, goal=goal, timestamp=timestamp, date=date)


HistoryRecord = DailySnapshot
