"""Heatmap colorization and realignment onto the captured frame."""

from __future__ import annotations

from enum import Enum

import cv2
import matplotlib
import numpy as np
from loguru import logger

from src.utils.sherd_detect.preprocess import CropGeometry


MIN_RAMP_STOPS = 16
DEFAULT_COLORMAP = "viridis"
NEUTRAL_FILL = (0, 0, 0, 255)


class ColorScheme(str, Enum):
    """Probability to color mappings."""

    RAMP = "ramp"
    DIVERGING = "diverging"
    LEGACY = "legacy"


def build_color_ramp(name: str = DEFAULT_COLORMAP, stops: int = 256) -> np.ndarray:
    """Sample a matplotlib colormap into a discrete RGB lookup table.

    Parameters
    ----------
    name : str, optional
        Registered matplotlib colormap name; unknown names fall back to
        ``viridis``.
    stops : int, optional
        Number of table entries, at least 16.

    Returns
    -------
    numpy.ndarray
        ``uint8`` table with shape ``(stops, 3)``, low to high probability.
    """
    if stops < MIN_RAMP_STOPS:
        raise ValueError(f"Color ramp needs at least {MIN_RAMP_STOPS} stops")
    if name not in matplotlib.colormaps:
        logger.warning(f"Unknown colormap '{name}', using {DEFAULT_COLORMAP}")
        name = DEFAULT_COLORMAP
    cmap = matplotlib.colormaps[name].resampled(stops)
    rgba = cmap(np.linspace(0.0, 1.0, stops))
    return np.round(rgba[:, :3] * 255.0).astype(np.uint8)


def _ramp_rgb(probs: np.ndarray, lut: np.ndarray) -> np.ndarray:
    """Look up ramp colors for probabilities."""
    stops = lut.shape[0]
    indices = np.clip((probs * stops).astype(np.int64), 0, stops - 1)
    return lut[indices]


def _diverging_rgb(probs: np.ndarray) -> np.ndarray:
    """Blue through magenta to red, split at 0.5."""
    low_half = probs < 0.5
    red = np.where(low_half, 255.0 * (probs / 0.5), 255.0)
    blue = np.where(low_half, 255.0, 255.0 * (1.0 - (probs - 0.5) / 0.5))
    green = np.zeros_like(probs)
    return np.stack([red, green, blue], axis=-1)


def _legacy_rgb(probs: np.ndarray) -> np.ndarray:
    """Linear blue to red blend."""
    red = probs * 255.0
    blue = (1.0 - probs) * 255.0
    return np.stack([red, np.zeros_like(probs), blue], axis=-1)


def colorize(
    prob_map: np.ndarray,
    scheme: ColorScheme = ColorScheme.RAMP,
    translucent: bool = False,
    ramp: np.ndarray | None = None,
) -> np.ndarray:
    """Colorize a probability map.

    Parameters
    ----------
    prob_map : numpy.ndarray
        Probabilities with shape ``(H, W)``.
    scheme : ColorScheme, optional
        Color mapping.
    translucent : bool, optional
        Use alpha ``180 + 75 * v`` instead of opaque pixels.
    ramp : numpy.ndarray | None, optional
        Lookup table for ``ColorScheme.RAMP``; defaults to ``viridis``.

    Returns
    -------
    numpy.ndarray
        ``uint8`` RGBA image with shape ``(H, W, 4)``.
    """
    probs = np.clip(np.asarray(prob_map, dtype=np.float64), 0.0, 1.0)
    if scheme == ColorScheme.RAMP:
        lut = build_color_ramp() if ramp is None else ramp
        rgb = _ramp_rgb(probs, lut).astype(np.float64)
    elif scheme == ColorScheme.DIVERGING:
        rgb = _diverging_rgb(probs)
    else:
        rgb = _legacy_rgb(probs)
    if translucent:
        alpha = np.round(180.0 + 75.0 * probs)
    else:
        alpha = np.full(probs.shape, 255.0)
    rgba = np.concatenate([np.round(rgb), alpha[..., np.newaxis]], axis=-1)
    return np.clip(rgba, 0, 255).astype(np.uint8)


def realign(colored: np.ndarray, geometry: CropGeometry) -> np.ndarray:
    """Paste a colored map into the frame-sized canvas.

    Parameters
    ----------
    colored : numpy.ndarray
        RGBA map in model-input resolution.
    geometry : CropGeometry
        Square the model saw, in frame coordinates.

    Returns
    -------
    numpy.ndarray
        RGBA image with shape ``(src_height, src_width, 4)``; pixels outside
        the square are opaque black.
    """
    canvas = np.empty((geometry.src_height, geometry.src_width, 4), dtype=np.uint8)
    canvas[:, :] = NEUTRAL_FILL
    if geometry.side <= 0:
        return canvas
    # nearest neighbour keeps class boundaries sharp
    scaled = cv2.resize(
        np.ascontiguousarray(colored),
        (geometry.side, geometry.side),
        interpolation=cv2.INTER_NEAREST,
    )
    canvas[
        geometry.offset_y : geometry.offset_y + geometry.side,
        geometry.offset_x : geometry.offset_x + geometry.side,
    ] = scaled
    return canvas


def composite(
    prob_map: np.ndarray,
    geometry: CropGeometry | None,
    scheme: ColorScheme = ColorScheme.RAMP,
    translucent: bool = False,
    ramp: np.ndarray | None = None,
) -> np.ndarray:
    """Colorize ``prob_map`` and align it with the original frame.

    Without ``geometry`` the colorized map is returned at model resolution.
    """
    colored = colorize(prob_map, scheme=scheme, translucent=translucent, ramp=ramp)
    if geometry is None:
        return colored
    return realign(colored, geometry)
