"""真实加速度计采样后端（Linux IIO sysfs）。"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable, Dict, Optional, Protocol

from steptrack.adapters.base import SampleSink, SampleSource, SensorUnavailable
from steptrack.core.models import Sample

logger = logging.getLogger(__name__)

IIO_DEVICES_DIR = Path("/sys/bus/iio/devices")
_AXES = ("x", "y", "z")


class AccelerometerDriver(Protocol):
    """加速度计驱动接口。"""

    def open(self) -> None:
        """获取设备，失败时抛出 `SensorUnavailable`。"""

    def read(self) -> Sample:
        """读取一次三轴加速度（m/s²）。"""

    def close(self) -> None:
        """释放设备。"""


def find_iio_accelerometer(root: Path = IIO_DEVICES_DIR) -> Optional[Path]:
    """在 IIO 设备目录中查找第一个加速度计。"""

    if not root.is_dir():
        return None
    for candidate in sorted(root.glob("iio:device*")):
        if (candidate / "in_accel_x_raw").exists():
            return candidate
    return None


def sensor_permission_granted(device: Path) -> bool:
    """检查当前进程能否读取三个轴的原始数据。"""

    return all(os.access(device / f"in_accel_{axis}_raw", os.R_OK) for axis in _AXES)


class IIOAccelerometer:
    """通过 sysfs 读取 Linux IIO 加速度计。

    读数按 `(raw + offset) * scale` 换算，缩放系数优先使用分轴文件
    `in_accel_<axis>_scale`，否则使用共享的 `in_accel_scale`。
    """

    def __init__(self, device: Optional[Path] = None, root: Path = IIO_DEVICES_DIR) -> None:
        self._device = Path(device) if device is not None else None
        self._root = root
        self._scale: Dict[str, float] = {}
        self._offset: Dict[str, float] = {}

    @property
    def device(self) -> Optional[Path]:
        return self._device

    def open(self) -> None:
        device = self._device or find_iio_accelerometer(self._root)
        if device is None or not (device / "in_accel_x_raw").exists():
            raise SensorUnavailable("未找到加速度计设备")
        if not sensor_permission_granted(device):
            raise SensorUnavailable(f"没有读取加速度计的权限: {device}")

        try:
            for axis in _AXES:
                self._scale[axis] = self._read_float(device, f"in_accel_{axis}_scale", "in_accel_scale", 1.0)
                self._offset[axis] = self._read_float(device, f"in_accel_{axis}_offset", "in_accel_offset", 0.0)
        except (OSError, ValueError) as exc:
            raise SensorUnavailable(f"加速度计初始化失败: {exc}") from exc

        self._device = device
        logger.info("使用加速度计 %s", device)

    def read(self) -> Sample:
        if self._device is None:
            raise RuntimeError("加速度计未打开")
        values = {}
        for axis in _AXES:
            raw = float((self._device / f"in_accel_{axis}_raw").read_text().strip())
            values[axis] = (raw + self._offset[axis]) * self._scale[axis]
        return Sample(x=values["x"], y=values["y"], z=values["z"])

    def close(self) -> None:
        self._scale.clear()
        self._offset.clear()

    @staticmethod
    def _read_float(device: Path, name: str, fallback: str, default: float) -> float:
        for filename in (name, fallback):
            path = device / filename
            if path.exists():
                return float(path.read_text().strip())
        return default


class RealSensorBackend(SampleSource):
    """按固定周期轮询加速度计驱动。"""

    thread_name = "steptrack-sensor"

    def __init__(
        self,
        sink: SampleSink,
        driver: Optional[AccelerometerDriver] = None,
        poll_interval: float = 0.02,
        permission_check: Optional[Callable[[], bool]] = None,
    ) -> None:
        super().__init__(sink, interval=poll_interval)
        self._driver: AccelerometerDriver = driver if driver is not None else IIOAccelerometer()
        self._permission_check = permission_check
        self._opened = False

    def _open(self) -> None:
        if self._permission_check is not None and not self._permission_check():
            raise SensorUnavailable("加速度计权限被拒绝")
        try:
            self._driver.open()
        except SensorUnavailable:
            raise
        except Exception as exc:
            raise SensorUnavailable(f"无法获取加速度计: {exc}") from exc
        self._opened = True

    def _tick(self) -> None:
        self.emit(self._driver.read())

    def _close(self) -> None:
        if not self._opened:
            return
        self._opened = False
        try:
            self._driver.close()
        except Exception:
            logger.warning("释放加速度计失败", exc_info=True)
