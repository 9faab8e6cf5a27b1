from qfluentwidgets import (
    QConfig,
    qconfig,
    ConfigItem,
    BoolValidator,
    OptionsConfigItem,
    OptionsValidator,
    EnumSerializer,
    RangeConfigItem,
    RangeValidator,
)

import matplotlib
from loguru import logger

from src import __version__
from src.core.capture_pipeline import PipelineOptions
from src.utils.sherd_detect.heatmap import DEFAULT_COLORMAP, ColorScheme
from src.utils.sherd_detect.inference import Activation
from src.utils.sherd_detect.orientation import CapturePolicy
from src.utils.sherd_detect.preprocess import GeometryMode


COLORMAP_NAMES = [DEFAULT_COLORMAP] + sorted(
    name for name in matplotlib.colormaps if name != DEFAULT_COLORMAP
)


class Config(QConfig):
    """
    Configuration for the application.
    """

    # Readiness states that enable the capture button
    capturePolicy = OptionsConfigItem(
        "Capture", "CapturePolicy", CapturePolicy.ALIGNED_OR_ALMOST,
        OptionsValidator(CapturePolicy), EnumSerializer(CapturePolicy)
    )

    # Geolocation wait, capped at 4 s
    gpsTimeoutMs = RangeConfigItem(
        "Capture", "GpsTimeoutMs", 4000, RangeValidator(0, 4000)
    )

    # Square model input side used when the model shape is dynamic
    inputSize = RangeConfigItem(
        "Model", "InputSize", 256, RangeValidator(16, 2048)
    )

    # Direct resize for legacy models, center crop otherwise
    geometryMode = OptionsConfigItem(
        "Model", "GeometryMode", GeometryMode.CENTER_CROP,
        OptionsValidator(GeometryMode), EnumSerializer(GeometryMode)
    )

    normalize = ConfigItem("Model", "Normalize", True, BoolValidator())

    activation = OptionsConfigItem(
        "Model", "Activation", Activation.SIGMOID,
        OptionsValidator(Activation), EnumSerializer(Activation)
    )

    colorScheme = OptionsConfigItem(
        "Heatmap", "ColorScheme", ColorScheme.RAMP,
        OptionsValidator(ColorScheme), EnumSerializer(ColorScheme)
    )

    # Registered matplotlib colormaps, invalid names reset to viridis
    colormap = OptionsConfigItem(
        "Heatmap", "Colormap", DEFAULT_COLORMAP,
        OptionsValidator(COLORMAP_NAMES)
    )

    rampStops = RangeConfigItem(
        "Heatmap", "RampStops", 256, RangeValidator(16, 1024)
    )

    translucent = ConfigItem("Heatmap", "Translucent", False, BoolValidator())

    # Directory of the .pth record store
    storeDir = ConfigItem("Storage", "StoreDir", "app/store")


def pipeline_options_from_config(config: Config) -> PipelineOptions:
    """Build pipeline options from configuration items."""
    input_side = int(config.get(config.inputSize))
    options = PipelineOptions(
        capture_policy=config.get(config.capturePolicy),
        input_size=(input_side, input_side),
        geometry_mode=config.get(config.geometryMode),
        normalize=bool(config.get(config.normalize)),
        activation=config.get(config.activation),
        color_scheme=config.get(config.colorScheme),
        colormap=str(config.get(config.colormap)),
        ramp_stops=int(config.get(config.rampStops)),
        translucent=bool(config.get(config.translucent)),
        gps_timeout_s=int(config.get(config.gpsTimeoutMs)) / 1000.0,
    )
    logger.debug(f"Pipeline options from config: {options}")
    return options


VERSION = __version__

cfg = Config()
qconfig.load('config.json', cfg)
