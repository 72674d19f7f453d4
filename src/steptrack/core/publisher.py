"""快照多播：订阅时立即回放最新快照，之后按变更顺序推送。"""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from steptrack.core.models import DailySnapshot

logger = logging.getLogger(__name__)

Listener = Callable[[DailySnapshot], None]


@dataclass(eq=False)
class Subscription:
    """订阅句柄。"""

    id: int
    listener: Listener
    _publisher: Optional["SnapshotPublisher"] = field(default=None, repr=False)

    def unsubscribe(self) -> None:
        if self._publisher is not None:
            self._publisher.unsubscribe(self)


class SnapshotPublisher:
    """线程安全的监听者注册表。"""

    def __init__(self, initial: Optional[DailySnapshot] = None) -> None:
        self._latest = initial
        self._listeners: Dict[int, Listener] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
        # 回放与推送互斥，保证新订阅者既不漏收也不重复收到同一次变更
        self._delivery_lock = threading.RLock()

    @property
    def latest(self) -> Optional[DailySnapshot]:
        with self._lock:
            return self._latest

    def __len__(self) -> int:
        with self._lock:
            return len(self._listeners)

    def subscribe(self, listener: Listener) -> Subscription:
        with self._delivery_lock:
            with self._lock:
                subscription = Subscription(id=next(self._ids), listener=listener, _publisher=self)
                latest = self._latest
            if latest is not None:
                self._deliver(listener, latest)
            with self._lock:
                self._listeners[subscription.id] = listener
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """移除指定订阅，重复调用无副作用。"""

        with self._lock:
            self._listeners.pop(subscription.id, None)

    def publish(self, snapshot: DailySnapshot) -> None:
        with self._delivery_lock:
            with self._lock:
                self._latest = snapshot
                targets = list(self._listeners.items())
            for subscription_id, listener in targets:
                with self._lock:
                    active = subscription_id in self._listeners
                if active:
                    self._deliver(listener, snapshot)

    def _deliver(self, listener: Listener, snapshot: DailySnapshot) -> None:
        try:
            listener(snapshot)
        except Exception:
            logger.warning("步数订阅回调执行失败", exc_info=True)
