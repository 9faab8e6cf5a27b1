"""Orientation gating for capture framing."""

from __future__ import annotations

import math
from collections.abc import AsyncIterable, AsyncIterator
from dataclasses import dataclass
from enum import Enum

from loguru import logger

from src.utils.sherd_detect.errors import SensorUnavailable


SMOOTHING_ALPHA = 0.2
TARGET_PITCH_DEG = 90.0
ALIGNED_TILT_DEG = 5.0
ALMOST_ALIGNED_TILT_DEG = 12.0
HINT_THRESHOLD_DEG = 6.0


class ReadinessState(str, Enum):
    """Device tilt classification used to gate the capture trigger."""

    UNKNOWN = "unknown"
    ALIGNED = "aligned"
    ALMOST_ALIGNED = "almost_aligned"
    MISALIGNED = "misaligned"


class CapturePolicy(str, Enum):
    """Readiness states that enable the capture trigger."""

    ALIGNED_ONLY = "aligned_only"
    ALIGNED_OR_ALMOST = "aligned_or_almost"


@dataclass(frozen=True)
class OrientationSample:
    """Raw orientation reading in degrees.

    Parameters
    ----------
    pitch : float | None
        Front-back tilt (``beta``); 90 means the device is upright.
    roll : float | None
        Left-right tilt (``gamma``).
    """

    pitch: float | None
    roll: float | None


@dataclass
class FilterState:
    """Low-pass filter memory for one capture session."""

    filtered_pitch: float | None = None
    filtered_roll: float | None = None


def classify_tilt(tilt: float) -> ReadinessState:
    """Classify a combined tilt magnitude.

    Parameters
    ----------
    tilt : float
        Tilt magnitude in degrees.

    Returns
    -------
    ReadinessState
        ``ALIGNED`` up to 5 degrees, ``ALMOST_ALIGNED`` up to 12 degrees,
        ``MISALIGNED`` otherwise.
    """
    if tilt <= ALIGNED_TILT_DEG:
        return ReadinessState.ALIGNED
    if tilt <= ALMOST_ALIGNED_TILT_DEG:
        return ReadinessState.ALMOST_ALIGNED
    return ReadinessState.MISALIGNED


def direction_hints(pitch_error: float, roll: float) -> list[str]:
    """Derive advisory tilt hints from pitch error and roll."""
    hints: list[str] = []
    if pitch_error > HINT_THRESHOLD_DEG:
        hints.append("Tilt top away from you")
    elif pitch_error < -HINT_THRESHOLD_DEG:
        hints.append("Tilt top toward you")
    if roll > HINT_THRESHOLD_DEG:
        hints.append("Tilt left")
    elif roll < -HINT_THRESHOLD_DEG:
        hints.append("Tilt right")
    return hints


class OrientationGate:
    """Smooth orientation samples and classify capture readiness.

    Examples
    --------
    >>> gate = OrientationGate()
    >>> gate.update(OrientationSample(pitch=90.0, roll=0.0))
    <ReadinessState.ALIGNED: 'aligned'>
    >>> gate.update(OrientationSample(pitch=None, roll=None))
    <ReadinessState.ALIGNED: 'aligned'>
    """

    def __init__(self, alpha: float = SMOOTHING_ALPHA) -> None:
        self.alpha = alpha
        self.state = FilterState()
        self.readiness = ReadinessState.UNKNOWN
        self.sensor_available = True

    def update(self, sample: OrientationSample | None) -> ReadinessState:
        """Feed one sample and return the new readiness state.

        Missing samples fail open to ``ALIGNED`` and leave the filter as is.
        """
        if sample is None or sample.pitch is None or sample.roll is None:
            self.readiness = ReadinessState.ALIGNED
            return self.readiness
        state = self.state
        if state.filtered_pitch is None or state.filtered_roll is None:
            state.filtered_pitch = float(sample.pitch)
            state.filtered_roll = float(sample.roll)
        else:
            state.filtered_pitch += self.alpha * (sample.pitch - state.filtered_pitch)
            state.filtered_roll += self.alpha * (sample.roll - state.filtered_roll)
        self.readiness = classify_tilt(self.tilt())
        return self.readiness

    def mark_unavailable(self) -> ReadinessState:
        """Switch to fail-open mode when the sensor cannot be used."""
        self.sensor_available = False
        self.readiness = ReadinessState.ALIGNED
        logger.info("Orientation sensor unavailable, assuming visual alignment")
        return self.readiness

    def reset(self) -> None:
        """Clear filter memory at the end of a capture session."""
        self.state = FilterState()
        self.readiness = ReadinessState.UNKNOWN
        self.sensor_available = True

    def pitch_error(self) -> float:
        """Return filtered pitch minus the upright target."""
        if self.state.filtered_pitch is None:
            return 0.0
        return self.state.filtered_pitch - TARGET_PITCH_DEG

    def tilt(self) -> float:
        """Return the combined tilt magnitude of the filtered state."""
        roll = self.state.filtered_roll or 0.0
        return math.hypot(self.pitch_error(), roll)

    def hints(self) -> list[str]:
        """Return advisory hints for the current filtered state."""
        if self.state.filtered_pitch is None:
            return []
        return direction_hints(self.pitch_error(), self.state.filtered_roll or 0.0)

    def can_capture(
        self, policy: CapturePolicy = CapturePolicy.ALIGNED_OR_ALMOST
    ) -> bool:
        """Check whether the capture trigger may be enabled."""
        if self.readiness == ReadinessState.ALIGNED:
            return True
        if self.readiness == ReadinessState.ALMOST_ALIGNED:
            return policy == CapturePolicy.ALIGNED_OR_ALMOST
        return False

    def status_text(self) -> str:
        """Return indicator text for the current readiness state."""
        if not self.sensor_available:
            return "Sensor unavailable. Align visually and capture."
        if self.readiness == ReadinessState.ALIGNED:
            return "Aligned. Tap capture."
        if self.readiness == ReadinessState.ALMOST_ALIGNED:
            return "Almost aligned. Hold steady."
        if self.readiness == ReadinessState.MISALIGNED:
            hint_text = ", ".join(self.hints())
            if hint_text:
                return f"Tilt device until aligned ({hint_text})."
            return "Tilt device until aligned."
        return "Waiting for orientation..."


async def follow_orientation(
    gate: OrientationGate,
    samples: AsyncIterable[OrientationSample | None],
) -> AsyncIterator[ReadinessState]:
    """Feed an async sample stream into ``gate`` and yield readiness.

    A stream raising :class:`SensorUnavailable` switches the gate to
    fail-open mode and ends the iteration.
    """
    try:
        async for sample in samples:
            yield gate.update(sample)
    except SensorUnavailable as exc:
        logger.debug(f"Orientation stream stopped: {exc}")
        yield gate.mark_unavailable()
