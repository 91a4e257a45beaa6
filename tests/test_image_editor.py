"""Tests for photo adjustments, filter presets, crop, export and filter previews."""

import io

import numpy as np
import pytest
from PIL import Image

from src.image.editor import (
    DEFAULT_ADJUSTMENTS,
    FILTER_PRESETS,
    Adjustments,
    CropRect,
    apply_adjustments,
    apply_crop,
    export_image,
    generate_filter_preview,
    merge_preset,
    vignette_mask,
)

pytestmark = [pytest.mark.fast]


def _gradient(size=(64, 48)) -> Image.Image:
    w, h = size
    arr = np.zeros((h, w, 3), dtype=np.uint8)
    arr[:, :, 0] = np.linspace(0, 255, w, dtype=np.uint8)[np.newaxis, :]
    arr[:, :, 1] = np.linspace(255, 0, h, dtype=np.uint8)[:, np.newaxis]
    arr[:, :, 2] = 90
    return Image.fromarray(arr)


def _solid(color, size=(20, 20), mode="RGB") -> Image.Image:
    return Image.new(mode, size, color)


# --- presets and adjustments ---


def test_ten_presets_all_merge_to_valid_adjustments():
    assert list(FILTER_PRESETS) == [
        "original",
        "vivid",
        "warm",
        "cool",
        "mono",
        "sepia",
        "fade",
        "dramatic",
        "vintage",
        "noir",
    ]
    for preset in FILTER_PRESETS.values():
        assert isinstance(merge_preset(DEFAULT_ADJUSTMENTS, preset), Adjustments)


def test_preset_replaces_only_the_fields_it_names():
    user = Adjustments(brightness=150, temperature=-20, vignette=10)
    merged = merge_preset(user, FILTER_PRESETS["noir"])
    assert merged == Adjustments(brightness=95, contrast=150, saturation=0, temperature=-20, vignette=60)


def test_original_preset_keeps_user_adjustments():
    user = Adjustments(contrast=180)
    assert merge_preset(user, FILTER_PRESETS["original"]) is user
    assert merge_preset(user, None) is user


@pytest.mark.parametrize(
    "kwargs",
    [{"brightness": 201}, {"contrast": -1}, {"saturation": 250}, {"temperature": 101}, {"vignette": -5}],
)
def test_adjustments_out_of_range_are_rejected(kwargs):
    with pytest.raises(ValueError):
        Adjustments(**kwargs)


def test_neutral_adjustments_leave_pixels_unchanged():
    img = _gradient()
    out = apply_adjustments(img)
    assert out is not img
    assert np.array_equal(np.asarray(out), np.asarray(img))


def test_mono_preset_is_grayscale():
    out = np.asarray(apply_adjustments(_gradient(), preset=FILTER_PRESETS["mono"]), dtype=np.int16)
    assert (out[:, :, 0] == out[:, :, 1]).all()
    assert (out[:, :, 1] == out[:, :, 2]).all()


def test_brightness_scales_pixels():
    out = apply_adjustments(_solid((100, 100, 100)), Adjustments(brightness=50))
    assert out.getpixel((5, 5)) == (50, 50, 50)


def test_warm_temperature_shifts_gray_toward_red():
    r, g, b = apply_adjustments(_solid((128, 128, 128)), Adjustments(temperature=100)).getpixel((5, 5))
    assert r > g > b


def test_cool_temperature_keeps_gray_and_rotates_red_toward_blue():
    gray = apply_adjustments(_solid((128, 128, 128)), Adjustments(temperature=-100)).getpixel((5, 5))
    assert max(gray) - min(gray) <= 1

    r, _, b = apply_adjustments(_solid((255, 0, 0)), Adjustments(temperature=-100)).getpixel((5, 5))
    assert b > 100
    assert r > 200


def test_warm_preset_multiplies_orange_overlay():
    r, g, b = apply_adjustments(_solid((255, 255, 255)), preset=FILTER_PRESETS["warm"]).getpixel((5, 5))
    assert r == 255
    assert r > g > b


def test_vintage_preset_screens_overlay_onto_black():
    r, g, b = apply_adjustments(_solid((0, 0, 0)), preset=FILTER_PRESETS["vintage"]).getpixel((5, 5))
    assert r > g > b > 0
    assert r < 40


def test_vignette_darkens_corners_not_center():
    out = apply_adjustments(_solid((255, 255, 255), size=(100, 100)), Adjustments(vignette=100))
    assert out.getpixel((50, 50)) == (255, 255, 255)
    assert max(out.getpixel((0, 0))) < 20


def test_vignette_mask_ramps_between_radii():
    mask = vignette_mask(100, 100, 50)
    assert mask[50, 50] == 0.0
    assert mask[0, 0] == pytest.approx(0.5)
    assert mask.max() <= 0.5


def test_alpha_is_preserved():
    img = _solid((200, 50, 50, 77), mode="RGBA")
    out = apply_adjustments(img, preset=FILTER_PRESETS["dramatic"])
    assert out.mode == "RGBA"
    assert out.getpixel((10, 10))[3] == 77


def test_source_image_is_not_modified():
    img = _solid((10, 200, 30))
    apply_adjustments(img, preset=FILTER_PRESETS["noir"])
    assert img.getpixel((0, 0)) == (10, 200, 30)


# --- crop ---


def test_crop_inside_image():
    out = apply_crop(_gradient(), CropRect(10, 5, 20, 15))
    assert out.size == (20, 15)
    assert out.mode == "RGB"


def test_crop_past_edge_is_transparent():
    out = apply_crop(_solid((255, 0, 0), size=(10, 10)), CropRect(5, 5, 10, 10))
    assert out.mode == "RGBA"
    assert out.getpixel((0, 0)) == (255, 0, 0, 255)
    assert out.getpixel((9, 9))[3] == 0


@pytest.mark.parametrize("size", [(0, 5), (5, -1)])
def test_crop_needs_positive_size(size):
    with pytest.raises(ValueError, match="positive"):
        CropRect(0, 0, *size)


# --- export and previews ---


def test_export_jpeg_and_png():
    img = _solid((0, 0, 255, 128), mode="RGBA")
    jpeg = export_image(img)
    png = export_image(img, "png")

    assert jpeg.startswith(b"\xff\xd8")
    with Image.open(io.BytesIO(png)) as decoded:
        assert decoded.format == "PNG"
        assert decoded.getpixel((0, 0)) == (0, 0, 255, 128)


def test_export_rejects_other_formats():
    with pytest.raises(ValueError, match="export format"):
        export_image(_solid((0, 0, 0)), "webp")


@pytest.mark.parametrize(
    "size, expected",
    [((400, 200), (120, 60)), ((200, 400), (60, 120)), ((300, 200), (120, 80)), ((1000, 3), (120, 1))],
)
def test_filter_preview_fits_long_side(size, expected):
    assert generate_filter_preview(_gradient(size), FILTER_PRESETS["original"]).size == expected


def test_filter_preview_applies_preset():
    preview = np.asarray(generate_filter_preview(_gradient((240, 160)), FILTER_PRESETS["mono"]))
    assert (preview[:, :, 0] == preview[:, :, 2]).all()
