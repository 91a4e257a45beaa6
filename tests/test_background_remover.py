"""Tests for chroma-key background removal and color picking."""

import numpy as np
import pytest

from src.core.raster import create_surface
from src.image.background_remover import MAX_COLOR_DISTANCE, pick_color, remove_background

pytestmark = [pytest.mark.fast]

GREEN = (0, 255, 0)


def _canvas_of(colors):
    """One row, one pixel per color, fully opaque."""
    canvas = create_surface(len(colors), 1)
    for i, color in enumerate(colors):
        canvas[0, i, :3] = color
    canvas[:, :, 3] = 255
    return canvas


def test_exact_match_becomes_transparent():
    canvas = _canvas_of([GREEN])
    remove_background(canvas, GREEN, 30)
    assert canvas[0, 0, 3] == 0


def test_distant_pixels_keep_alpha():
    canvas = _canvas_of([(255, 0, 255), (255, 255, 255)])
    canvas[0, 1, 3] = 128
    remove_background(canvas, GREEN, 30)
    assert canvas[0, 0, 3] == 255
    assert canvas[0, 1, 3] == 128


def test_rgb_is_not_modified():
    canvas = _canvas_of([GREEN, (10, 240, 10), (200, 0, 0)])
    before = canvas[:, :, :3].copy()
    remove_background(canvas, GREEN, 50)
    assert np.array_equal(canvas[:, :, :3], before)


def test_edge_band_ramps_alpha():
    """threshold ~132.5 at 30%; the outer 10% (~13.25) ramps from 0 toward 255."""
    near = (0, 135, 0)  # distance 120
    far = (0, 125, 0)  # distance 130
    outside = (0, 122, 0)  # distance 133
    canvas = _canvas_of([near, far, outside])

    remove_background(canvas, GREEN, 30)

    a_near, a_far, a_outside = (int(v) for v in canvas[0, :, 3])
    assert 0 < a_near < a_far < 255
    assert a_outside == 255


def test_edge_alpha_value():
    threshold = 0.3 * MAX_COLOR_DISTANCE
    edge = threshold * 0.1
    edge_factor = (threshold - 125.0) / edge
    canvas = _canvas_of([(0, 130, 0)])  # distance 125

    remove_background(canvas, GREEN, 30)

    assert canvas[0, 0, 3] == int(np.floor((1 - edge_factor) * 255 + 0.5))


def test_tolerance_zero_removes_only_exact_matches():
    canvas = _canvas_of([GREEN, (0, 254, 0)])
    remove_background(canvas, GREEN, 0)
    assert canvas[0, 0, 3] == 0
    assert canvas[0, 1, 3] == 255


@pytest.mark.parametrize("tolerance", [-1, 100.5])
def test_tolerance_out_of_range_raises(tolerance):
    with pytest.raises(ValueError, match="tolerance"):
        remove_background(_canvas_of([GREEN]), GREEN, tolerance)


def test_rejects_non_rgba_canvas():
    with pytest.raises(ValueError):
        remove_background(np.zeros((2, 2, 3), dtype=np.uint8), GREEN, 10)


def test_pick_color_reads_pixel():
    canvas = _canvas_of([(1, 2, 3), (4, 5, 6)])
    assert pick_color(canvas, 1, 0) == (4, 5, 6)


def test_pick_color_clamps_coordinates():
    canvas = _canvas_of([(1, 2, 3), (4, 5, 6)])
    assert pick_color(canvas, -10, -10) == (1, 2, 3)
    assert pick_color(canvas, 99, 99) == (4, 5, 6)
