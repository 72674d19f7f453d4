"""步数数据的持久化，支持加载/保存当日快照与历史。"""

from __future__ import annotations

import abc
import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from steptrack.core.models import DailySnapshot, HistoryRecord

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = Path.home() / ".steptrack"
CURRENT_KEY = "current"
HISTORY_KEY = "history"


class StepStore(abc.ABC):
    """键值存储接口，具体后端可替换。"""

    @abc.abstractmethod
    def read(self, key: str) -> Optional[Any]:
        """读取键对应的 JSON 值，不存在时返回 None。"""

    @abc.abstractmethod
    def write(self, key: str, value: Any) -> None:
        """写入可 JSON 序列化的值。"""


class JsonFileStore(StepStore):
    """每个键对应数据目录下的一个 JSON 文件。"""

    def __init__(self, directory: Optional[Path] = None) -> None:
        self._directory = Path(directory) if directory is not None else DEFAULT_DATA_DIR
        self._lock = threading.Lock()

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, key: str) -> Path:
        return self._directory / f"{key}.json"

    def read(self, key: str) -> Optional[Any]:
        path = self.path_for(key)
        if not path.exists():
            return None
        return json.loads(path.read_text(encoding="utf-8"))

    def write(self, key: str, value: Any) -> None:
        path = self.path_for(key)
        with self._lock:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_suffix(".json.tmp")
            tmp_path.write_text(json.dumps(value, ensure_ascii=False, indent=2), encoding="utf-8")
            tmp_path.replace(path)


class MemoryStore(StepStore):
    """内存存储，写入时同样做 JSON 序列化，便于测试与模拟模式。"""

    def __init__(self) -> None:
        self._data: Dict[str, str] = {}
        self._lock = threading.Lock()

    def read(self, key: str) -> Optional[Any]:
        with self._lock:
            raw = self._data.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    def write(self, key: str, value: Any) -> None:
        raw = json.dumps(value, ensure_ascii=False)
        with self._lock:
            self._data[key] = raw

    def write_raw(self, key: str, raw: str) -> None:
        with self._lock:
            self._data[key] = raw


def load_snapshot(store: StepStore) -> Optional[DailySnapshot]:
    """读取当日快照，数据缺失或损坏时返回 None。"""

    try:
        data = store.read(CURRENT_KEY)
        if data is None:
            return None
        return DailySnapshot.from_dict(data)
    except Exception:
        logger.warning("无法读取已保存的步数数据，使用默认值", exc_info=True)
        return None


def save_snapshot(store: StepStore, snapshot: DailySnapshot) -> None:
    try:
        store.write(CURRENT_KEY, snapshot.to_dict())
    except Exception:
        logger.warning("无法写入步数数据", exc_info=True)


def load_history(store: StepStore) -> List[HistoryRecord]:
    """读取历史记录，任一条目损坏都视为整体缺失。"""

    try:
        data = store.read(HISTORY_KEY)
        if data is None:
            return []
        if not isinstance(data, list):
            raise ValueError(f"历史记录格式错误: {type(data).__name__}")
        return [DailySnapshot.from_dict(item) for item in data]
    except Exception:
        logger.warning("无法读取步数历史，使用空历史", exc_info=True)
        return []


def save_history(store: StepStore, records: List[HistoryRecord]) -> None:
    try:
        store.write(HISTORY_KEY, [record.to_dict() for record in records])
    except Exception:
        logger.warning("无法写入步数历史", exc_info=True)
