"""Tests for image resizing and the aspect-lock / percentage size helpers."""

import io

import pytest
from PIL import Image

from src.core.raster import decode_data_url
from src.image.resizer import (
    PERCENT_PRESETS,
    ResizeOptions,
    get_image_info,
    locked_size,
    resize_image,
    scaled_size,
)

pytestmark = [pytest.mark.fast]


def test_locked_size_from_width():
    assert locked_size(1920, 1080, width=960) == (960, 540)


def test_locked_size_from_height_rounds_half_up():
    assert locked_size(1920, 1080, height=100) == (178, 100)
    assert locked_size(3, 2, height=1) == (2, 1)


def test_locked_size_never_reaches_zero():
    assert locked_size(3000, 10, width=1) == (1, 1)


@pytest.mark.parametrize("sides", [{}, {"width": 10, "height": 10}])
def test_locked_size_needs_exactly_one_side(sides):
    with pytest.raises(ValueError, match="exactly one"):
        locked_size(100, 100, **sides)


def test_percent_presets_scale_both_sides():
    assert [scaled_size(641, 479, p) for p in PERCENT_PRESETS] == [
        (160, 120),
        (321, 240),
        (481, 359),
        (641, 479),
    ]


def test_scaled_size_rejects_non_positive_percent():
    with pytest.raises(ValueError):
        scaled_size(10, 10, 0)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"width": 0, "height": 10},
        {"width": 10, "height": 10, "format": "gif"},
        {"width": 10, "height": 10, "quality": 0.05},
        {"width": 10, "height": 10, "quality": 1.5},
    ],
)
def test_invalid_options_are_rejected(kwargs):
    with pytest.raises(ValueError):
        ResizeOptions(**kwargs)


def test_resize_to_png():
    img = Image.new("RGB", (100, 50), (200, 10, 10))

    result = resize_image(img, ResizeOptions(width=40, height=20, format="png"))

    assert (result.width, result.height) == (40, 20)
    assert result.data_url.startswith("data:image/png;base64,")
    assert decode_data_url(result.data_url)[1] == result.payload
    with Image.open(io.BytesIO(result.payload)) as out:
        assert out.size == (40, 20)
        assert out.getpixel((20, 10)) == (200, 10, 10)


def test_resize_ignores_aspect_when_both_sides_given():
    result = resize_image(Image.new("RGB", (100, 50)), ResizeOptions(width=30, height=90, format="JPEG"))
    with Image.open(io.BytesIO(result.payload)) as out:
        assert out.format == "JPEG"
        assert out.size == (30, 90)


def test_webp_keeps_transparency():
    img = Image.new("RGBA", (32, 32), (0, 0, 0, 0))
    result = resize_image(img, ResizeOptions(width=16, height=16, format="webp", quality=1.0))
    assert result.data_url.startswith("data:image/webp;base64,")
    with Image.open(io.BytesIO(result.payload)) as out:
        assert out.mode == "RGBA"
        assert out.getpixel((8, 8))[3] == 0


def test_palette_image_is_resized():
    img = Image.new("P", (20, 20), 3)
    result = resize_image(img, ResizeOptions(width=10, height=10, format="PNG"))
    with Image.open(io.BytesIO(result.payload)) as out:
        assert out.size == (10, 10)


def test_get_image_info(tmp_path):
    path = tmp_path / "a.png"
    Image.new("RGB", (37, 11)).save(path)
    assert get_image_info(path) == (37, 11)
