"""Exception types raised by the capture-to-overlay pipeline."""

from __future__ import annotations


class ArtifactSifterError(Exception):
    """Base class for pipeline errors."""


class UnsupportedOutputShape(ArtifactSifterError, ValueError):
    """Model output rank or buffer size cannot be decoded."""


class ModelLoadFailure(ArtifactSifterError, RuntimeError):
    """Model binary could not be turned into an inference session."""


class InferenceFailure(ArtifactSifterError, RuntimeError):
    """Inference runtime failed while running a capture."""


class SensorUnavailable(ArtifactSifterError):
    """Orientation sensor is absent or permission was denied."""


class GeolocationUnavailable(ArtifactSifterError):
    """Geolocation is absent, denied or timed out."""


class CaptureInProgress(ArtifactSifterError, RuntimeError):
    """Another capture is still running on the same session."""
