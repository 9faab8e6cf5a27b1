"""Tests for heatmap colorization and frame realignment."""

import numpy as np
import pytest

from src.utils.sherd_detect.heatmap import (
    NEUTRAL_FILL,
    ColorScheme,
    build_color_ramp,
    colorize,
    composite,
)
from src.utils.sherd_detect.preprocess import compute_crop_geometry


def test_color_ramp_has_requested_stops() -> None:
    """Ramp lookup tables should be sampled from the colormap."""
    ramp = build_color_ramp("viridis", 32)

    assert ramp.shape == (32, 3)
    assert ramp.dtype == np.uint8
    assert not np.array_equal(ramp[0], ramp[-1])


def test_color_ramp_rejects_too_few_stops() -> None:
    """Fewer than 16 stops should be rejected."""
    with pytest.raises(ValueError):
        build_color_ramp("viridis", 8)


def test_ramp_colorize_maps_ends_to_table_ends() -> None:
    """Probability 0 and 1 should map to the first and last ramp entries."""
    ramp = build_color_ramp("viridis", 16)
    probs = np.array([[0.0, 0.5, 1.0]])

    colored = colorize(probs, ColorScheme.RAMP, ramp=ramp)

    assert np.array_equal(colored[0, 0, :3], ramp[0])
    assert np.array_equal(colored[0, 1, :3], ramp[8])
    assert np.array_equal(colored[0, 2, :3], ramp[-1])
    assert np.all(colored[..., 3] == 255)


def test_diverging_scheme_runs_blue_magenta_red() -> None:
    """Diverging colors should pass through magenta at 0.5."""
    colored = colorize(np.array([[0.0, 0.5, 1.0]]), ColorScheme.DIVERGING)

    assert colored[0, 0, :3].tolist() == [0, 0, 255]
    assert colored[0, 1, :3].tolist() == [255, 0, 255]
    assert colored[0, 2, :3].tolist() == [255, 0, 0]

    sweep = colorize(np.linspace(0.0, 1.0, 101)[np.newaxis, :], ColorScheme.DIVERGING)
    assert np.all(np.diff(sweep[0, :, 0].astype(int)) >= 0)
    assert np.all(np.diff(sweep[0, :, 2].astype(int)) <= 0)


def test_legacy_translucent_alpha() -> None:
    """Translucent output should use alpha 180 + 75 * v."""
    colored = colorize(
        np.array([[0.0, 0.2, 1.0]]), ColorScheme.LEGACY, translucent=True
    )

    assert colored[0, :, 3].tolist() == [180, 195, 255]
    assert colored[0, 2, :3].tolist() == [255, 0, 0]
    assert colored[0, 0, :3].tolist() == [0, 0, 255]


def test_uniform_map_fills_crop_square_exactly() -> None:
    """A constant map should paint the crop square one color and leave black elsewhere."""
    prob_map = np.full((4, 4), 0.3, dtype=np.float32)
    geometry = compute_crop_geometry(12, 8)

    aligned = composite(prob_map, geometry)

    expected = colorize(np.full((1, 1), 0.3))[0, 0]
    assert aligned.shape == (8, 12, 4)
    assert np.all(aligned[:, 2:10] == expected)
    assert np.all(aligned[:, :2] == np.array(NEUTRAL_FILL, dtype=np.uint8))
    assert np.all(aligned[:, 10:] == np.array(NEUTRAL_FILL, dtype=np.uint8))


def test_hot_spot_lands_at_mapped_frame_coordinate() -> None:
    """A hot model pixel should reappear at offset + x * side / input size."""
    prob_map = np.zeros((4, 4), dtype=np.float32)
    prob_map[1, 2] = 1.0
    geometry = compute_crop_geometry(16, 8)
    hot = colorize(np.ones((1, 1)))[0, 0]
    cold = colorize(np.zeros((1, 1)))[0, 0]

    aligned = composite(prob_map, geometry)

    x_frame, y_frame = geometry.to_affine(4, 4) * (2, 1)
    assert (x_frame, y_frame) == (8.0, 2.0)
    assert np.all(aligned[2:4, 8:10] == hot)
    assert np.array_equal(aligned[0, 4], cold)
    assert np.array_equal(aligned[4, 8], cold)
    hot_rows, hot_cols = np.nonzero(np.all(aligned == hot, axis=-1))
    assert set(hot_rows.tolist()) == {2, 3}
    assert set(hot_cols.tolist()) == {8, 9}


def test_composite_without_geometry_returns_model_resolution() -> None:
    """Direct resize path returns the colorized map unscaled."""
    prob_map = np.random.default_rng(0).random((5, 7))

    colored = composite(prob_map, None, scheme=ColorScheme.DIVERGING)

    assert colored.shape == (5, 7, 4)


def test_unknown_colormap_falls_back_to_viridis() -> None:
    """Misspelled colormap names should not break ramp construction."""
    assert np.array_equal(
        build_color_ramp("viridiss", 32), build_color_ramp("viridis", 32)
    )
