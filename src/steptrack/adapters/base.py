"""加速度采样源基类。"""

from __future__ import annotations

import abc
import logging
import threading
import time
from typing import Callable, Optional

from steptrack.core.models import Sample

logger = logging.getLogger(__name__)

SampleSink = Callable[[Sample, float], None]
FailureHandler = Callable[[BaseException], None]


class SensorUnavailable(RuntimeError):
    """传感器权限被拒绝或设备不存在。"""


class SampleSource(abc.ABC):
    """所有采样后端的抽象基类，在独立线程中向 sink 推送读数。"""

    thread_name = "steptrack-source"

    def __init__(self, sink: SampleSink, interval: float) -> None:
        self._sink = sink
        self._interval = interval
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._on_failure: Optional[FailureHandler] = None

    def set_failure_handler(self, handler: Optional[FailureHandler]) -> None:
        """采集线程因异常退出时回调 handler，回调在采集线程内执行。"""

        self._on_failure = handler

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """获取资源并启动采集线程，重复调用无副作用。"""

        if self._thread is not None:
            return
        self._stop_event.clear()
        self._open()
        self._thread = threading.Thread(target=self._run, name=self.thread_name, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """停止采集线程并释放资源，可重复调用。"""

        self._stop_event.set()
        thread = self._thread
        self._thread = None
        try:
            if thread is not None and thread is not threading.current_thread():
                thread.join(timeout=max(1.0, self._interval * 2))
        finally:
            self._close()

    def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                self._tick()
            except Exception as exc:
                logger.warning("采样失败，停止采集", exc_info=True)
                self._report_failure(exc)
                break
            self._stop_event.wait(self._interval)

    def _report_failure(self, exc: BaseException) -> None:
        handler = self._on_failure
        if handler is None:
            return
        try:
            handler(exc)
        except Exception:
            logger.warning("采样失败回调执行出错", exc_info=True)

    def emit(self, sample: Sample, timestamp: Optional[float] = None) -> None:
        self._sink(sample, time.monotonic() if timestamp is None else timestamp)

    def _open(self) -> None:
        """获取底层资源，失败时抛出 `SensorUnavailable`。"""

    def _close(self) -> None:
        """释放底层资源。"""

    @abc.abstractmethod
    def _tick(self) -> None:
        """执行一次采样并通过 `emit` 推送。"""
