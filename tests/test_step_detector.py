import math

import pytest

from steptrack.core.models import Sample
from steptrack.core.step_detector import StepDetector, weighted_magnitude


def _feed(detector: StepDetector, magnitudes: list[float], times_ms: list[int]) -> list[float]:
    steps = []
    for magnitude, t in zip(magnitudes, times_ms):
        event = detector.observe_magnitude(magnitude, t / 1000.0)
        if event is not None:
            steps.append(event.timestamp)
    return steps


def test_weighted_magnitude_biases_vertical_axis() -> None:
    origin = Sample(0.0, 0.0, 0.0)

    assert weighted_magnitude(origin, Sample(1.0, 1.0, 1.0)) == pytest.approx(math.sqrt(3.0))
    assert weighted_magnitude(origin, Sample(0.0, 1.0, 0.0)) == pytest.approx(math.sqrt(2.0))
    assert weighted_magnitude(origin, Sample(1.0, 0.0, 0.0)) == pytest.approx(math.sqrt(0.5))


def test_first_sample_is_reference_only() -> None:
    detector = StepDetector()

    assert detector.observe(Sample(5.0, 5.0, 5.0), timestamp=0.0) is None
    assert detector.state.last_sample == Sample(5.0, 5.0, 5.0)
    assert detector.state.last_magnitude == 0.0
    assert detector.state.in_step is False


def test_two_peaks_outside_debounce_window_count_twice() -> None:
    detector = StepDetector(threshold=1.2, hysteresis_factor=0.6, min_step_interval=0.3)

    steps = _feed(
        detector,
        [0.1, 1.5, 1.6, 0.3, 0.1, 1.8, 1.9, 0.4],
        [0, 50, 100, 150, 500, 550, 600, 650],
    )

    assert steps == pytest.approx([0.15, 0.65])


def test_candidate_inside_debounce_window_is_dropped() -> None:
    detector = StepDetector(threshold=1.2, hysteresis_factor=0.6, min_step_interval=0.3)

    steps = _feed(detector, [1.5, 0.3, 1.5, 0.3], [0, 100, 150, 250])

    assert steps == pytest.approx([0.1])
    assert detector.state.in_step is False


def test_flat_plateau_does_not_enter_rising() -> None:
    detector = StepDetector(threshold=1.2)
    detector.observe_magnitude(2.0, 0.0)
    detector.observe_magnitude(0.1, 0.1)

    # 高位平台：幅值不再上升时不应重新进入 Rising
    detector.state.last_magnitude = 2.0
    assert detector.observe_magnitude(2.0, 1.0) is None
    assert detector.state.in_step is False


def test_hysteresis_band_keeps_rising_state() -> None:
    detector = StepDetector(threshold=1.2, hysteresis_factor=0.6)

    detector.observe_magnitude(1.5, 0.0)
    # 0.8 低于阈值但高于 0.72，仍处于 Rising
    assert detector.observe_magnitude(0.8, 0.05) is None
    assert detector.state.in_step is True
    assert detector.observe_magnitude(0.7, 0.1) is not None


def test_rejected_candidate_does_not_move_debounce_anchor() -> None:
    detector = StepDetector(min_step_interval=0.3)

    steps = _feed(detector, [1.5, 0.3, 1.5, 0.3, 1.5, 0.3], [0, 100, 150, 250, 350, 400])

    # 第二个候选被丢弃，第三个与第一个相距 300ms，被接受
    assert steps == pytest.approx([0.1, 0.4])


def test_cadence_cap_holds_for_dense_candidates() -> None:
    detector = StepDetector(min_step_interval=0.3)
    magnitudes = [1.5, 0.1] * 50
    times = list(range(0, 1000, 10))

    steps = _feed(detector, magnitudes, times)

    assert steps
    assert all(b - a >= 0.3 - 1e-9 for a, b in zip(steps, steps[1:]))


def test_samples_drive_detection_end_to_end() -> None:
    detector = StepDetector()
    rest = Sample(0.0, 0.0, 0.0)
    lifted = Sample(0.0, 1.2, 0.0)

    events = [
        detector.observe(rest, 0.0),
        detector.observe(lifted, 0.05),
        detector.observe(lifted, 0.10),
    ]

    assert events[0] is None
    assert events[1] is None
    assert events[2] is not None
    assert events[2].timestamp == 0.10


def test_reset_restores_initial_state() -> None:
    detector = StepDetector()
    detector.observe(Sample(0.0, 0.0, 0.0), 0.0)
    detector.observe(Sample(0.0, 2.0, 0.0), 0.1)
    assert detector.state.in_step is True

    detector.reset()

    assert detector.state.last_sample is None
    assert detector.state.last_magnitude == 0.0
    assert detector.state.in_step is False
    assert detector.state.last_step_timestamp is None


@pytest.mark.parametrize(
    "kwargs",
    [
        {"threshold": 0.0},
        {"hysteresis_factor": 0.0},
        {"hysteresis_factor": 1.5},
        {"min_step_interval": -0.1},
    ],
)
def test_invalid_configuration_is_rejected(kwargs) -> None:
    with pytest.raises(ValueError):
        StepDetector(**kwargs)
