"""Sherd detection submodule for capture-to-overlay workflows.

Re-exports the public numeric and geometry API.
"""

from src.utils.sherd_detect.errors import (
    ArtifactSifterError,
    CaptureInProgress,
    GeolocationUnavailable,
    InferenceFailure,
    ModelLoadFailure,
    SensorUnavailable,
    UnsupportedOutputShape,
)
from src.utils.sherd_detect.frame import Frame, aspect_crop_window, capture_frame
from src.utils.sherd_detect.heatmap import (
    ColorScheme,
    build_color_ramp,
    colorize,
    composite,
    realign,
)
from src.utils.sherd_detect.inference import (
    Activation,
    InferenceAdapter,
    OnnxRuntimeSession,
    decode_output,
    stable_sigmoid,
)
from src.utils.sherd_detect.orientation import (
    CapturePolicy,
    OrientationGate,
    OrientationSample,
    ReadinessState,
    follow_orientation,
)
from src.utils.sherd_detect.preprocess import (
    CropGeometry,
    GeometryMode,
    compute_crop_geometry,
    pixels_to_tensor,
    prepare,
)

__all__ = [
    "Activation",
    "ArtifactSifterError",
    "CaptureInProgress",
    "CapturePolicy",
    "ColorScheme",
    "CropGeometry",
    "Frame",
    "GeolocationUnavailable",
    "GeometryMode",
    "InferenceAdapter",
    "InferenceFailure",
    "ModelLoadFailure",
    "OnnxRuntimeSession",
    "OrientationGate",
    "OrientationSample",
    "ReadinessState",
    "SensorUnavailable",
    "UnsupportedOutputShape",
    "aspect_crop_window",
    "build_color_ramp",
    "capture_frame",
    "colorize",
    "composite",
    "compute_crop_geometry",
    "decode_output",
    "follow_orientation",
    "pixels_to_tensor",
    "prepare",
    "realign",
    "stable_sigmoid",
]
