"""Aspect-locked frame capture from live camera pixels."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


TARGET_ASPECT = 4.0 / 3.0
FALLBACK_WIDTH = 1280
FALLBACK_HEIGHT = 720


@dataclass(frozen=True)
class Frame:
    """Captured RGBA frame.

    Parameters
    ----------
    pixels : numpy.ndarray
        ``uint8`` array with shape ``(height, width, 4)``.
    width : int
        Frame width in pixels.
    height : int
        Frame height in pixels.
    """

    pixels: np.ndarray
    width: int
    height: int


def aspect_crop_window(width: int, height: int) -> tuple[int, int, int, int]:
    """Compute the centered 4:3 crop of a source frame.

    Parameters
    ----------
    width : int
        Source width. Zero substitutes the 1280x720 fallback.
    height : int
        Source height. Zero substitutes the 1280x720 fallback.

    Returns
    -------
    tuple[int, int, int, int]
        Crop window ``(x0, y0, crop_width, crop_height)``. All values are
        floored.

    Examples
    --------
    >>> aspect_crop_window(1920, 1080)
    (240, 0, 1440, 1080)
    >>> aspect_crop_window(0, 0)
    (160, 0, 960, 720)
    """
    if not width or not height:
        width, height = FALLBACK_WIDTH, FALLBACK_HEIGHT
    if width / height > TARGET_ASPECT:
        target_w = max(1, int(height * 4 // 3))
        return (width - target_w) // 2, 0, target_w, height
    target_h = max(1, int(width * 3 // 4))
    return 0, (height - target_h) // 2, width, target_h


def _as_rgba(image: np.ndarray) -> np.ndarray:
    """Expand gray or RGB pixels to RGBA."""
    image_data = np.asarray(image, dtype=np.uint8)
    if image_data.ndim == 3 and image_data.shape[2] == 1:
        image_data = image_data[:, :, 0]
    if image_data.ndim == 2:
        image_data = np.stack([image_data] * 3, axis=2)
    if image_data.shape[2] == 4:
        return image_data
    alpha = np.full(image_data.shape[:2] + (1,), 255, dtype=np.uint8)
    return np.concatenate([image_data[:, :, :3], alpha], axis=2)


def capture_frame(
    live_frame: np.ndarray | None,
    nominal_width: int,
    nominal_height: int,
) -> Frame:
    """Copy the centered 4:3 region of a live frame.

    Parameters
    ----------
    live_frame : numpy.ndarray | None
        Live pixels with shape ``(H, W)``, ``(H, W, 1)``, ``(H, W, 3)`` or
        ``(H, W, 4)``.
        Pixels are addressed in the nominal coordinate space; regions the
        array does not cover stay transparent black.
    nominal_width, nominal_height : int
        Dimensions reported by the camera.

    Returns
    -------
    Frame
        RGBA frame with integer dimensions.
    """
    x0, y0, crop_w, crop_h = aspect_crop_window(nominal_width, nominal_height)
    pixels = np.zeros((crop_h, crop_w, 4), dtype=np.uint8)
    if live_frame is not None and np.asarray(live_frame).size:
        source = _as_rgba(live_frame)
        src_h, src_w = source.shape[:2]
        x1 = min(src_w, x0 + crop_w)
        y1 = min(src_h, y0 + crop_h)
        if x1 > x0 and y1 > y0:
            pixels[: y1 - y0, : x1 - x0] = source[y0:y1, x0:x1]
    return Frame(pixels=pixels, width=crop_w, height=crop_h)
