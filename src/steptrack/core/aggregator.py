"""当日步数与目标的聚合。"""

from __future__ import annotations

import datetime as dt
from typing import Optional

from steptrack.core.models import DailySnapshot, percent_complete


class InvalidGoal(ValueError):
    """目标步数必须为正整数。"""


class StepAggregator:
    """持有当日计数与目标，每次变更都返回新的快照。"""

    def __init__(
        self,
        goal: int = 10000,
        count: int = 0,
        date: Optional[dt.date] = None,
        reset_on_new_day: bool = False,
    ) -> None:
        self._validate_goal(goal)
        if count < 0:
            raise ValueError("count 不能为负数")
        self._goal = goal
        self._count = count
        self._date = date
        self._reset_on_new_day = reset_on_new_day

    @property
    def count(self) -> int:
        return self._effective_count(self._now().date())

    @property
    def goal(self) -> int:
        return self._goal

    def restore(self, snapshot: DailySnapshot) -> None:
        """用持久化的快照恢复内部状态。"""

        self._validate_goal(snapshot.goal)
        self._count = max(0, snapshot.count)
        self._goal = snapshot.goal
        self._date = snapshot.date

    def apply_step(self) -> DailySnapshot:
        today = self._roll_over()
        self._count += 1
        return self._snapshot_for(today)

    def reset(self) -> DailySnapshot:
        today = self._roll_over()
        self._count = 0
        return self._snapshot_for(today)

    def set_goal(self, goal: int) -> DailySnapshot:
        self._validate_goal(goal)
        today = self._roll_over()
        self._goal = goal
        return self._snapshot_for(today)

    def snapshot(self) -> DailySnapshot:
        now = self._now()
        return DailySnapshot(
            count=self._effective_count(now.date()),
            goal=self._goal,
            timestamp=now.timestamp(),
            date=now.date(),
        )

    def percent_complete(self) -> int:
        return percent_complete(self.count, self._goal)

    def _roll_over(self) -> dt.date:
        today = self._now().date()
        self._count = self._effective_count(today)
        self._date = today
        return today

    def _effective_count(self, today: dt.date) -> int:
        # 跨天是否清零由配置决定，默认沿用前一天的计数
        if self._reset_on_new_day and self._date is not None and today > self._date:
            return 0
        return self._count

    def _snapshot_for(self, today: dt.date) -> DailySnapshot:
        now = self._now()
        return DailySnapshot(count=self._count, goal=self._goal, timestamp=now.timestamp(), date=today)

    @staticmethod
    def _validate_goal(goal: int) -> None:
        if isinstance(goal, bool) or not isinstance(goal, int) or goal <= 0:
            raise InvalidGoal(f"目标步数必须为正整数: {goal!r}")

    def _now(self) -> dt.datetime:
        return dt.datetime.now()
