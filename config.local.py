"""本地配置覆盖示例（`AppConfig.load()` 会自动导入该文件）。"""

from steptrack.config import AppConfig


def load_config() -> AppConfig:
    return AppConfig(
        step_threshold=1.2,
        hysteresis_factor=0.6,
        min_step_interval_ms=300,
        default_goal=10000,
        history_max_days=90,
        reset_on_new_day=False,
        simulation_interval_seconds=2.0,
        sensor_poll_interval_seconds=0.02,
        # sensor_device="/sys/bus/iio/devices/iio:device0",
        # data_dir="/path/to/steptrack-data",
    )
