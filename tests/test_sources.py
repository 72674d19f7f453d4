import threading
from pathlib import Path

import pytest

from steptrack.adapters.base import SensorUnavailable
from steptrack.adapters.sensor import IIOAccelerometer, RealSensorBackend, find_iio_accelerometer
from steptrack.adapters.simulated import SimulatedBackend
from steptrack.core.models import Sample
from steptrack.core.step_detector import StepDetector


def _make_iio_device(root: Path, raw=(10, 20, 30), scale="0.5", offset=None) -> Path:
    device = root / "iio:device0"
    device.mkdir(parents=True)
    for axis, value in zip("xyz", raw):
        (device / f"in_accel_{axis}_raw").write_text(f"{value}\n")
    (device / "in_accel_scale").write_text(f"{scale}\n")
    if offset is not None:
        (device / "in_accel_offset").write_text(f"{offset}\n")
    return device


class _FakeDriver:
    def __init__(self) -> None:
        self.opened = False
        self.closed = False
        self.reads = 0
        self.read_event = threading.Event()

    def open(self) -> None:
        self.opened = True

    def read(self) -> Sample:
        self.reads += 1
        if self.reads >= 3:
            self.read_event.set()
        return Sample(0.0, float(self.reads), 0.0)

    def close(self) -> None:
        self.closed = True


def test_iio_accelerometer_reads_scaled_values(tmp_path: Path) -> None:
    device = _make_iio_device(tmp_path, offset="2")
    sensor = IIOAccelerometer(root=tmp_path)

    sensor.open()

    assert sensor.device == device
    assert sensor.read() == Sample(6.0, 11.0, 16.0)


def test_iio_accelerometer_per_axis_scale_overrides_shared(tmp_path: Path) -> None:
    device = _make_iio_device(tmp_path, scale="1.0")
    (device / "in_accel_y_scale").write_text("2.0\n")
    sensor = IIOAccelerometer(device=device)

    sensor.open()

    assert sensor.read() == Sample(10.0, 40.0, 30.0)


def test_iio_accelerometer_missing_device(tmp_path: Path) -> None:
    assert find_iio_accelerometer(tmp_path) is None
    with pytest.raises(SensorUnavailable):
        IIOAccelerometer(root=tmp_path).open()


def test_backend_permission_denied_fails_synchronously() -> None:
    driver = _FakeDriver()
    backend = RealSensorBackend(lambda *_: None, driver=driver, permission_check=lambda: False)

    with pytest.raises(SensorUnavailable):
        backend.start()

    assert driver.opened is False
    assert backend.running is False
    backend.stop()
    assert driver.closed is False


def test_backend_wraps_driver_errors() -> None:
    class _BrokenDriver(_FakeDriver):
        def open(self) -> None:
            raise OSError("device busy")

    backend = RealSensorBackend(lambda *_: None, driver=_BrokenDriver())

    with pytest.raises(SensorUnavailable):
        backend.start()


def test_backend_polls_driver_until_stopped() -> None:
    driver = _FakeDriver()
    received: list[Sample] = []
    backend = RealSensorBackend(lambda sample, _: received.append(sample), driver=driver, poll_interval=0.001)

    backend.start()
    assert driver.read_event.wait(timeout=5.0)
    backend.stop()

    assert driver.closed is True
    assert backend.running is False
    count = len(received)
    assert count >= 3
    assert received[0] == Sample(0.0, 1.0, 0.0)
    backend.stop()
    assert len(received) == count


def test_backend_reports_read_failure_to_handler() -> None:
    class _FailingDriver(_FakeDriver):
        def read(self) -> Sample:
            raise OSError("read error")

    driver = _FailingDriver()
    failures: list[BaseException] = []
    reported = threading.Event()

    def on_failure(exc: BaseException) -> None:
        failures.append(exc)
        reported.set()

    backend = RealSensorBackend(lambda *_: None, driver=driver, poll_interval=0.001)
    backend.set_failure_handler(on_failure)
    backend.start()

    assert reported.wait(timeout=5.0)
    assert isinstance(failures[0], OSError)
    backend.stop()
    assert driver.closed is True
    assert backend.running is False


def test_simulated_waveform_yields_one_step_per_tick() -> None:
    detector = StepDetector(threshold=1.2, min_step_interval=0.3)
    clock = {"now": 0.0}
    steps = []

    def sink(sample: Sample, _: float) -> None:
        if detector.observe(sample, clock["now"]) is not None:
            steps.append(clock["now"])

    backend = SimulatedBackend(sink, interval=2.0, amplitude=1.2)
    for tick in range(5):
        clock["now"] = tick * 2.0
        backend._tick()

    assert steps == [0.0, 2.0, 4.0, 6.0, 8.0]
