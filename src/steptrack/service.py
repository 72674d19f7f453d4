"""计步服务：串联采样源、检测器、聚合、历史、持久化与推送。"""

from __future__ import annotations

import logging
import threading
from collections import deque
from enum import Enum, auto
from pathlib import Path
from typing import Callable, Deque, List, Optional

from steptrack.adapters.base import SampleSink, SampleSource, SensorUnavailable
from steptrack.adapters.sensor import IIOAccelerometer, RealSensorBackend
from steptrack.adapters.simulated import SimulatedBackend
from steptrack.config import AppConfig
from steptrack.core.aggregator import StepAggregator
from steptrack.core.history import HistoryStore, HistorySummary, summarize_history
from steptrack.core.models import DailySnapshot, HistoryRecord, Sample, StepEvent
from steptrack.core.publisher import Listener, SnapshotPublisher, Subscription
from steptrack.core.step_detector import StepDetector
from steptrack.storage import (
    JsonFileStore,
    StepStore,
    load_history,
    load_snapshot,
    save_history,
    save_snapshot,
)

logger = logging.getLogger(__name__)

BackendFactory = Callable[[SampleSink], SampleSource]


class TrackingMode(Enum):
    """采集模式。"""

    STOPPED = auto()
    LIVE = auto()
    SIMULATED = auto()


class StepTrackingService:
    """计步引擎，进程内只构造一个实例并显式传递给使用方。

    `_lock` 保护检测器、当日计数与历史；`_mode_lock` 串行化模式切换。
    切换模式时先在 `_lock` 内摘下旧后端，再在锁外停止其线程。
    快照在 `_lock` 内排队，释放锁后才推送给监听者，
    因此监听者可以直接调用任何服务方法。
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        store: Optional[StepStore] = None,
        sensor_factory: Optional[BackendFactory] = None,
        simulation_factory: Optional[BackendFactory] = None,
    ) -> None:
        self._config = config or AppConfig.load_default()
        self._store = store if store is not None else JsonFileStore(self._config.data_dir)
        self._lock = threading.RLock()
        self._mode_lock = threading.Lock()
        self._dispatch_lock = threading.Lock()
        self._pending: Deque[DailySnapshot] = deque()

        self._detector = StepDetector(
            threshold=self._config.step_threshold,
            hysteresis_factor=self._config.hysteresis_factor,
            min_step_interval=self._config.min_step_interval_seconds,
        )
        self._aggregator = StepAggregator(
            goal=self._config.default_goal,
            reset_on_new_day=self._config.reset_on_new_day,
        )
        self._history = HistoryStore(max_days=self._config.history_max_days)

        saved = load_snapshot(self._store)
        if saved is not None:
            self._aggregator.restore(saved)
            logger.info("已恢复步数数据: count=%s goal=%s date=%s", saved.count, saved.goal, saved.date)
        self._history.load(load_history(self._store))

        self._publisher = SnapshotPublisher(initial=self._aggregator.snapshot())
        self._sensor_factory = sensor_factory or self._default_sensor_backend
        self._simulation_factory = simulation_factory or self._default_simulation_backend
        self._mode = TrackingMode.STOPPED
        self._backend: Optional[SampleSource] = None
        self._generation = 0

    @property
    def config(self) -> AppConfig:
        return self._config

    @property
    def mode(self) -> TrackingMode:
        with self._lock:
            return self._mode

    def start_tracking(self) -> None:
        """启动真实传感器采集，失败时抛出 `SensorUnavailable`，调用方可改用模拟模式。"""

        with self._mode_lock:
            if self.mode is TrackingMode.LIVE:
                return
            self._teardown()
            generation = self._begin_generation()
            source: Optional[SampleSource] = None
            try:
                source = self._sensor_factory(self._sink_for(generation))
                source.set_failure_handler(self._failure_handler(generation))
                source.start()
            except SensorUnavailable:
                self._release(source)
                logger.warning("传感器不可用，未启动实时计步", exc_info=True)
                raise
            except Exception as exc:
                self._release(source)
                raise SensorUnavailable(f"无法启动传感器: {exc}") from exc
            if not self._activate(source, TrackingMode.LIVE, generation):
                self._release(source)
                raise SensorUnavailable("传感器启动后立即读取失败")
            logger.info("实时计步已启动")

    def stop_tracking(self) -> None:
        """停止任何采集模式，可重复调用。"""

        with self._mode_lock:
            if self._teardown():
                logger.info("计步已停止")

    def start_simulation(self) -> None:
        with self._mode_lock:
            if self.mode is TrackingMode.SIMULATED:
                return
            self._teardown()
            generation = self._begin_generation()
            source = self._simulation_factory(self._sink_for(generation))
            source.set_failure_handler(self._failure_handler(generation))
            try:
                source.start()
            except Exception:
                self._release(source)
                raise
            if not self._activate(source, TrackingMode.SIMULATED, generation):
                self._release(source)
                logger.warning("模拟采样源启动后立即失败")
                return
            logger.info("模拟计步已启动，间隔 %.1f 秒", self._config.simulation_interval_seconds)

    def stop_simulation(self) -> None:
        with self._mode_lock:
            if self.mode is not TrackingMode.SIMULATED:
                return
            self._teardown()
            logger.info("模拟计步已停止")

    def close(self) -> None:
        self.stop_tracking()

    def observe(self, sample: Sample, timestamp: Optional[float] = None) -> Optional[StepEvent]:
        """处理一次加速度读数，实时与模拟两种来源共用此入口。"""

        return self._observe(sample, timestamp)

    def reset_step_count(self) -> None:
        with self._lock:
            self._commit(self._aggregator.reset())
        self._flush()
        logger.info("步数已清零")

    def set_goal(self, goal: int) -> None:
        """更新目标步数，非正整数抛出 `InvalidGoal` 且保留原目标。"""

        with self._lock:
            self._commit(self._aggregator.set_goal(goal))
        self._flush()
        logger.info("目标步数更新为 %s", goal)

    def current_snapshot(self) -> DailySnapshot:
        with self._lock:
            return self._aggregator.snapshot()

    def percent_complete(self) -> int:
        with self._lock:
            return self._aggregator.percent_complete()

    def get_step_history(self, days: int) -> List[HistoryRecord]:
        return self._history.query(days)

    def history_summary(self, days: int) -> HistorySummary:
        return summarize_history(self._history.query(days))

    def subscribe(self, listener: Listener) -> Subscription:
        """订阅快照更新，订阅时会立即收到最近一次推送的快照。"""

        return self._publisher.subscribe(listener)

    def unsubscribe(self, subscription: Subscription) -> None:
        self._publisher.unsubscribe(subscription)

    def _observe(
        self,
        sample: Sample,
        timestamp: Optional[float],
        generation: Optional[int] = None,
    ) -> Optional[StepEvent]:
        with self._lock:
            if generation is not None and generation != self._generation:
                return None
            event = self._detector.observe(sample, timestamp)
            if event is None:
                return None
            snapshot = self._aggregator.apply_step()
            self._commit(snapshot)
        self._flush()
        logger.debug("检测到步伐: %s", snapshot.count)
        return event

    def _commit(self, snapshot: DailySnapshot) -> None:
        # 调用方持有 _lock，快照按提交顺序排队
        self._history.upsert(snapshot)
        save_snapshot(self._store, snapshot)
        save_history(self._store, self._history.records())
        self._pending.append(snapshot)

    def _flush(self) -> None:
        """在引擎锁外按提交顺序推送排队的快照。

        同一时刻只有一个线程负责推送；其他线程入队后直接返回，
        由正在推送的线程一并送出。监听者内部再次修改状态时同理。
        """

        while True:
            if not self._dispatch_lock.acquire(blocking=False):
                return
            try:
                while True:
                    with self._lock:
                        if not self._pending:
                            break
                        snapshot = self._pending.popleft()
                    self._publisher.publish(snapshot)
            finally:
                self._dispatch_lock.release()
            with self._lock:
                if not self._pending:
                    return

    def _begin_generation(self) -> int:
        with self._lock:
            self._generation += 1
            self._detector.reset()
            return self._generation

    def _sink_for(self, generation: int) -> SampleSink:
        def sink(sample: Sample, timestamp: float) -> None:
            self._observe(sample, timestamp, generation)

        return sink

    def _failure_handler(self, generation: int) -> Callable[[BaseException], None]:
        def on_failure(exc: BaseException) -> None:
            self._on_source_failure(generation, exc)

        return on_failure

    def _on_source_failure(self, generation: int, exc: BaseException) -> None:
        # 在采集线程内执行，不取 _mode_lock；代际不符说明已被切换或停止
        with self._lock:
            if generation != self._generation:
                return
            backend = self._backend
            self._backend = None
            self._mode = TrackingMode.STOPPED
            self._generation += 1
            self._detector.reset()
        logger.error("采样源异常退出，计步已停止: %s", exc)
        self._release(backend)

    def _activate(self, source: SampleSource, mode: TrackingMode, generation: int) -> bool:
        with self._lock:
            if generation != self._generation:
                return False
            self._backend = source
            self._mode = mode
            return True

    def _teardown(self) -> bool:
        with self._lock:
            backend = self._backend
            was_active = self._mode is not TrackingMode.STOPPED
            self._backend = None
            self._mode = TrackingMode.STOPPED
            self._generation += 1
            self._detector.reset()
        self._release(backend)
        return was_active

    @staticmethod
    def _release(backend: Optional[SampleSource]) -> None:
        if backend is None:
            return
        try:
            backend.stop()
        except Exception:
            logger.warning("释放采样后端失败", exc_info=True)

    def _default_sensor_backend(self, sink: SampleSink) -> SampleSource:
        device = Path(self._config.sensor_device) if self._config.sensor_device else None
        return RealSensorBackend(
            sink,
            driver=IIOAccelerometer(device=device),
            poll_interval=self._config.sensor_poll_interval_seconds,
        )

    def _default_simulation_backend(self, sink: SampleSink) -> SampleSource:
        return SimulatedBackend(
            sink,
            interval=self._config.simulation_interval_seconds,
            amplitude=self._config.step_threshold,
        )
