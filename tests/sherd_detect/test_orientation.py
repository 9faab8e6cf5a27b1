"""Tests for orientation smoothing and readiness gating."""

import asyncio

import pytest

from src.utils.sherd_detect.errors import SensorUnavailable
from src.utils.sherd_detect.orientation import (
    CapturePolicy,
    OrientationGate,
    OrientationSample,
    ReadinessState,
    classify_tilt,
    direction_hints,
    follow_orientation,
)


def test_first_sample_seeds_filter_without_smoothing() -> None:
    """The first sample should be copied into the filter state."""
    gate = OrientationGate()
    state = gate.update(OrientationSample(pitch=97.0, roll=-3.0))

    assert gate.state.filtered_pitch == 97.0
    assert gate.state.filtered_roll == -3.0
    assert state == ReadinessState.ALMOST_ALIGNED


def test_followup_samples_apply_low_pass_filter() -> None:
    """Later samples should move the filter by alpha of the difference."""
    gate = OrientationGate()
    gate.update(OrientationSample(pitch=90.0, roll=0.0))
    gate.update(OrientationSample(pitch=140.0, roll=10.0))

    assert gate.state.filtered_pitch == pytest.approx(100.0)
    assert gate.state.filtered_roll == pytest.approx(2.0)
    assert gate.tilt() == pytest.approx((10.0**2 + 2.0**2) ** 0.5)
    assert gate.readiness == ReadinessState.ALMOST_ALIGNED


@pytest.mark.parametrize(
    ("tilt", "expected"),
    [
        (0.0, ReadinessState.ALIGNED),
        (5.0, ReadinessState.ALIGNED),
        (5.0001, ReadinessState.ALMOST_ALIGNED),
        (12.0, ReadinessState.ALMOST_ALIGNED),
        (12.0001, ReadinessState.MISALIGNED),
        (45.0, ReadinessState.MISALIGNED),
    ],
)
def test_classify_tilt_boundaries(tilt: float, expected: ReadinessState) -> None:
    """Boundary 5 is aligned and boundary 12 is almost aligned."""
    assert classify_tilt(tilt) == expected


def test_combined_tilt_uses_pitch_error_and_roll() -> None:
    """A 3-4-5 pitch/roll pair should sit exactly on the aligned boundary."""
    gate = OrientationGate()
    assert gate.update(OrientationSample(pitch=93.0, roll=4.0)) == ReadinessState.ALIGNED

    gate.reset()
    assert gate.update(OrientationSample(pitch=90.0, roll=12.5)) == ReadinessState.MISALIGNED


def test_missing_values_fail_open_without_touching_filter() -> None:
    """Samples without pitch or roll should force aligned readiness."""
    gate = OrientationGate()
    gate.update(OrientationSample(pitch=130.0, roll=0.0))
    assert gate.readiness == ReadinessState.MISALIGNED

    state = gate.update(OrientationSample(pitch=None, roll=1.0))

    assert state == ReadinessState.ALIGNED
    assert gate.state.filtered_pitch == 130.0
    assert gate.update(None) == ReadinessState.ALIGNED


def test_direction_hints_follow_sign_and_threshold() -> None:
    """Hints should appear only beyond six degrees on each axis."""
    assert direction_hints(8.0, -7.0) == ["Tilt top away from you", "Tilt right"]
    assert direction_hints(-6.5, 6.5) == ["Tilt top toward you", "Tilt left"]
    assert direction_hints(6.0, -6.0) == []


def test_can_capture_respects_policy() -> None:
    """Almost aligned enables capture only for the permissive policy."""
    gate = OrientationGate()
    assert not gate.can_capture()

    gate.update(OrientationSample(pitch=98.0, roll=0.0))
    assert gate.can_capture(CapturePolicy.ALIGNED_OR_ALMOST)
    assert not gate.can_capture(CapturePolicy.ALIGNED_ONLY)

    gate.reset()
    gate.update(OrientationSample(pitch=60.0, roll=0.0))
    assert not gate.can_capture(CapturePolicy.ALIGNED_OR_ALMOST)


def test_reset_clears_filter_state() -> None:
    """Ending a session should forget the filtered orientation."""
    gate = OrientationGate()
    gate.update(OrientationSample(pitch=91.0, roll=1.0))
    gate.reset()

    assert gate.state.filtered_pitch is None
    assert gate.readiness == ReadinessState.UNKNOWN
    assert gate.status_text() == "Waiting for orientation..."


def test_follow_orientation_fails_open_when_sensor_stops() -> None:
    """A stream raising SensorUnavailable should end in aligned state."""

    async def _samples():
        yield OrientationSample(pitch=150.0, roll=0.0)
        raise SensorUnavailable("permission denied")

    async def _collect(gate: OrientationGate) -> list[ReadinessState]:
        return [state async for state in follow_orientation(gate, _samples())]

    gate = OrientationGate()
    states = asyncio.run(_collect(gate))

    assert states == [ReadinessState.MISALIGNED, ReadinessState.ALIGNED]
    assert not gate.sensor_available
    assert gate.status_text().startswith("Sensor unavailable")
