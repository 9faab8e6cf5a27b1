"""Geometry-preserving preprocessing of captured frames."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import cv2
import numpy as np
from affine import Affine

from src.utils.sherd_detect.frame import Frame


IMAGENET_MEAN = np.array([0.485, 0.456, 0.406], dtype=np.float32)
IMAGENET_STD = np.array([0.229, 0.224, 0.225], dtype=np.float32)


class GeometryMode(str, Enum):
    """How a frame is mapped onto the model input."""

    DIRECT_RESIZE = "direct_resize"
    CENTER_CROP = "center_crop"


@dataclass(frozen=True)
class CropGeometry:
    """Square region of a frame fed to the model.

    Parameters
    ----------
    side : int
        Square side length, ``min(src_width, src_height)``.
    offset_x, offset_y : int
        Top-left corner of the square inside the frame.
    src_width, src_height : int
        Frame dimensions.
    """

    side: int
    offset_x: int
    offset_y: int
    src_width: int
    src_height: int

    def to_affine(self, input_width: int, input_height: int) -> Affine:
        """Return the model-input to frame pixel transform.

        Examples
        --------
        >>> geometry = CropGeometry(960, 160, 0, 1280, 960)
        >>> geometry.to_affine(256, 256) * (128, 128)
        (640.0, 480.0)
        """
        return Affine(
            self.side / input_width,
            0.0,
            float(self.offset_x),
            0.0,
            self.side / input_height,
            float(self.offset_y),
        )


def compute_crop_geometry(width: int, height: int) -> CropGeometry:
    """Compute the largest centered square of a ``width x height`` frame."""
    side = min(width, height)
    return CropGeometry(
        side=side,
        offset_x=(width - side) // 2,
        offset_y=(height - side) // 2,
        src_width=width,
        src_height=height,
    )


def pixels_to_tensor(rgba: np.ndarray, normalize: bool) -> np.ndarray:
    """Convert interleaved 8-bit pixels into a planar float tensor.

    Parameters
    ----------
    rgba : numpy.ndarray
        ``uint8`` array with shape ``(H, W, 3)`` or ``(H, W, 4)``; alpha is
        dropped.
    normalize : bool
        Apply ImageNet mean/std normalization after scaling to ``[0, 1]``.

    Returns
    -------
    numpy.ndarray
        ``float32`` tensor with shape ``(1, 3, H, W)`` in R, G, B order.
    """
    rgb = np.asarray(rgba)[:, :, :3].astype(np.float32) / np.float32(255.0)
    if normalize:
        rgb = (rgb - IMAGENET_MEAN) / IMAGENET_STD
    planar = np.transpose(rgb, (2, 0, 1))[np.newaxis, ...]
    return np.ascontiguousarray(planar, dtype=np.float32)


def prepare(
    frame: Frame,
    input_size: tuple[int, int],
    geometry_mode: GeometryMode = GeometryMode.CENTER_CROP,
    normalize: bool = True,
) -> tuple[np.ndarray, CropGeometry]:
    """Build the model input tensor and the crop geometry of a frame.

    Parameters
    ----------
    frame : Frame
        Captured frame.
    input_size : tuple[int, int]
        Model input ``(width, height)``.
    geometry_mode : GeometryMode, optional
        ``DIRECT_RESIZE`` stretches the whole frame, ``CENTER_CROP`` resizes
        the largest centered square.
    normalize : bool, optional
        Apply ImageNet normalization.

    Returns
    -------
    tuple[numpy.ndarray, CropGeometry]
        Input tensor ``(1, 3, H, W)`` and the square the model saw. For
        ``DIRECT_RESIZE`` the geometry has zero offsets.
    """
    input_w, input_h = int(input_size[0]), int(input_size[1])
    if input_w <= 0 or input_h <= 0:
        raise ValueError(f"Input size must be positive, got {input_size}")
    if geometry_mode == GeometryMode.CENTER_CROP:
        geometry = compute_crop_geometry(frame.width, frame.height)
        region = frame.pixels[
            geometry.offset_y : geometry.offset_y + geometry.side,
            geometry.offset_x : geometry.offset_x + geometry.side,
        ]
    else:
        geometry = CropGeometry(
            side=min(frame.width, frame.height),
            offset_x=0,
            offset_y=0,
            src_width=frame.width,
            src_height=frame.height,
        )
        region = frame.pixels
    resized = _resize_pixels(region, input_w, input_h)
    return pixels_to_tensor(resized, normalize), geometry


def _resize_pixels(pixels: np.ndarray, width: int, height: int) -> np.ndarray:
    """Resize pixels with bilinear smoothing, skipping no-op resizes."""
    region = np.ascontiguousarray(pixels)
    if region.shape[1] == width and region.shape[0] == height:
        return region
    return cv2.resize(region, (width, height), interpolation=cv2.INTER_LINEAR)
