"""按日期滚动保存每日步数。"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Iterable, List

from steptrack.core.models import HistoryRecord, round_half_up

TIMEFRAME_DAYS = {
    "weekly": 7,
    "monthly": 30,
    "all": 90,
}


@dataclass(frozen=True)
class HistorySummary:
    """历史窗口内的汇总统计。"""

    days: int
    total_steps: int
    average_steps: int
    goal_reached_days: int
    best_day_steps: int


class HistoryStore:
    """每个日期至多一条记录，按日期升序，超出上限时淘汰最早的日期。"""

    def __init__(self, max_days: int = 90) -> None:
        if max_days <= 0:
            raise ValueError("max_days 必须为正数")
        self._max_days = max_days
        self._records: List[HistoryRecord] = []
        self._lock = threading.Lock()

    @property
    def max_days(self) -> int:
        return self._max_days

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def upsert(self, record: HistoryRecord) -> None:
        with self._lock:
            for index, existing in enumerate(self._records):
                if existing.date == record.date:
                    self._records[index] = record
                    break
            else:
                self._records.append(record)
            self._normalize()

    def load(self, records: Iterable[HistoryRecord]) -> None:
        """整体替换历史记录，重复日期保留最后出现的一条。"""

        by_date = {}
        for record in records:
            by_date[record.date] = record
        with self._lock:
            self._records = list(by_date.values())
            self._normalize()

    def query(self, days: int) -> List[HistoryRecord]:
        """返回最近 `days` 天的记录（升序），不足时返回全部。"""

        if days <= 0:
            raise ValueError("days 必须为正整数")
        with self._lock:
            return list(self._records[-days:])

    def records(self) -> List[HistoryRecord]:
        with self._lock:
            return list(self._records)

    def _normalize(self) -> None:
        self._records.sort(key=lambda record: record.date)
        if len(self._records) > self._max_days:
            del self._records[: len(self._records) - self._max_days]


def summarize_history(records: Iterable[HistoryRecord]) -> HistorySummary:
    records = list(records)
    if not records:
        return HistorySummary(days=0, total_steps=0, average_steps=0, goal_reached_days=0, best_day_steps=0)

    total = sum(record.count for record in records)
    return HistorySummary(
        days=len(records),
        total_steps=total,
        average_steps=round_half_up(total / len(records)),
        goal_reached_days=sum(1 for record in records if record.count >= record.goal),
        best_day_steps=max(record.count for record in records),
    )
