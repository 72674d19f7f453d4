"""应用配置模型。"""

from __future__ import annotations

import importlib.util
from pathlib import Path

from pydantic import BaseModel, Field


class AppConfig(BaseModel):
    """总配置，可由项目根目录的 `config.local.py` 覆盖。"""

    step_threshold: float = Field(1.2, gt=0.0)
    hysteresis_factor: float = Field(0.6, gt=0.0, le=1.0)
    min_step_interval_ms: int = Field(300, ge=0)
    default_goal: int = Field(10000, ge=1)
    history_max_days: int = Field(90, ge=1)
    reset_on_new_day: bool = False
    simulation_interval_seconds: float = Field(2.0, gt=0.0)
    sensor_poll_interval_seconds: float = Field(0.02, gt=0.0)
    sensor_device: str | None = None
    data_dir: Path = Field(default_factory=lambda: Path.home() / ".steptrack")
    api_host: str = "127.0.0.1"
    api_port: int = Field(8000, ge=1, le=65535)

    @property
    def min_step_interval_seconds(self) -> float:
        return self.min_step_interval_ms / 1000.0

    @classmethod
    def load_default(cls) -> "AppConfig":
        return cls()

    @classmethod
    def load(cls) -> "AppConfig":
        """优先尝试加载项目根目录的 `config.local.py`，否则返回默认配置。"""

        root_dir = Path(__file__).resolve().parents[2]
        local_path = root_dir / "config.local.py"
        if not local_path.exists():
            return cls.load_default()

        spec = importlib.util.spec_from_file_location("config_local", local_path)
        if spec is None or spec.loader is None:
            return cls.load_default()

        module = importlib.util.module_from_spec(spec)
        try:
            spec.loader.exec_module(module)  # type: ignore[arg-type]
        except Exception:
            return cls.load_default()

        load_fn = getattr(module, "load_config", None)
        if callable(load_fn):
            try:
                return load_fn()
            except Exception:
                return cls.load_default()
        return cls.load_default()
