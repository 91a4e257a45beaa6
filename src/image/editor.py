"""
Photo editing: brightness/contrast/saturation/temperature/vignette adjustments, named filter
presets with optional color overlays, crop, and export. Operates on PIL images.
"""

import math
from dataclasses import dataclass, field, replace
from typing import Literal, Mapping

import numpy as np
from PIL import Image, ImageChops, ImageColor, ImageEnhance

from src.core.raster import encode_image

EXPORT_FORMATS = ("JPEG", "PNG")
PREVIEW_SIZE = 120

# Vignette ramps from 30% of the short side to 70% of the long side, measured from the center.
VIGNETTE_INNER = 0.3
VIGNETTE_OUTER = 0.7

_SEPIA = np.array(
    [
        [0.393, 0.769, 0.189],
        [0.349, 0.686, 0.168],
        [0.272, 0.534, 0.131],
    ]
)


@dataclass(frozen=True)
class Adjustments:
    """Percentages where 100 is neutral (brightness, contrast, saturation); temperature -100..100; vignette 0..100."""

    brightness: float = 100.0
    contrast: float = 100.0
    saturation: float = 100.0
    temperature: float = 0.0
    vignette: float = 0.0

    def __post_init__(self) -> None:
        for name in ("brightness", "contrast", "saturation"):
            value = getattr(self, name)
            if not 0.0 <= value <= 200.0:
                raise ValueError(f"{name} must be within [0, 200], got {value}")
        if not -100.0 <= self.temperature <= 100.0:
            raise ValueError(f"temperature must be within [-100, 100], got {self.temperature}")
        if not 0.0 <= self.vignette <= 100.0:
            raise ValueError(f"vignette must be within [0, 100], got {self.vignette}")


DEFAULT_ADJUSTMENTS = Adjustments()


@dataclass(frozen=True)
class Overlay:
    color: str
    opacity: float
    blend: Literal["multiply", "screen"] = "multiply"


@dataclass(frozen=True)
class FilterPreset:
    """A named look. Its adjustments replace the matching fields of the user's adjustments."""

    id: str
    name: str
    adjustments: Mapping[str, float] = field(default_factory=dict)
    overlay: Overlay | None = None


FILTER_PRESETS: dict[str, FilterPreset] = {
    p.id: p
    for p in (
        FilterPreset("original", "Original"),
        FilterPreset("vivid", "Vivid", {"brightness": 105, "contrast": 115, "saturation": 140}),
        FilterPreset(
            "warm",
            "Warm",
            {"brightness": 105, "saturation": 110, "temperature": 30},
            Overlay("#ff9933", 0.1, "multiply"),
        ),
        FilterPreset(
            "cool",
            "Cool",
            {"brightness": 105, "saturation": 90, "temperature": -30},
            Overlay("#3366ff", 0.08, "multiply"),
        ),
        FilterPreset("mono", "Mono", {"saturation": 0, "contrast": 110}),
        FilterPreset(
            "sepia",
            "Sepia",
            {"saturation": 30, "brightness": 105, "contrast": 95, "temperature": 40},
            Overlay("#704214", 0.15, "multiply"),
        ),
        FilterPreset("fade", "Fade", {"brightness": 110, "contrast": 85, "saturation": 80}),
        FilterPreset("dramatic", "Dramatic", {"brightness": 95, "contrast": 140, "saturation": 120, "vignette": 40}),
        FilterPreset(
            "vintage",
            "Vintage",
            {"brightness": 105, "contrast": 90, "saturation": 70, "temperature": 20},
            Overlay("#d4a574", 0.12, "screen"),
        ),
        FilterPreset("noir", "Noir", {"saturation": 0, "contrast": 150, "brightness": 95, "vignette": 60}),
    )
}


@dataclass(frozen=True)
class CropRect:
    x: int
    y: int
    width: int
    height: int

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"crop size must be positive, got {self.width}x{self.height}")


def merge_preset(adjustments: Adjustments, preset: FilterPreset | None) -> Adjustments:
    if preset is None or preset.id == "original":
        return adjustments
    return replace(adjustments, **preset.adjustments)


def _matrix(m: np.ndarray) -> tuple[float, ...]:
    """3x3 color matrix as the 12-tuple Image.convert expects (no offsets)."""
    return tuple(float(v) for row in m for v in (*row, 0.0))


def _sepia_matrix(amount: float) -> np.ndarray:
    return np.eye(3) * (1.0 - amount) + _SEPIA * amount


def _hue_rotate_matrix(degrees: float) -> np.ndarray:
    """Luminance-preserving hue rotation (the CSS filter-effects matrix)."""
    c, s = math.cos(math.radians(degrees)), math.sin(math.radians(degrees))
    return np.array(
        [
            [0.213 + c * 0.787 - s * 0.213, 0.715 - c * 0.715 - s * 0.715, 0.072 - c * 0.072 + s * 0.928],
            [0.213 - c * 0.213 + s * 0.143, 0.715 + c * 0.285 + s * 0.140, 0.072 - c * 0.072 - s * 0.283],
            [0.213 - c * 0.213 - s * 0.787, 0.715 - c * 0.715 + s * 0.715, 0.072 + c * 0.928 + s * 0.072],
        ]
    )


def _apply_temperature(rgb: Image.Image, temperature: float) -> Image.Image:
    # Warm shifts toward sepia, cool rotates hue toward blue.
    if temperature > 0:
        return rgb.convert("RGB", _matrix(_sepia_matrix(temperature / 200.0)))
    if temperature < 0:
        return rgb.convert("RGB", _matrix(_hue_rotate_matrix(temperature / 2.0)))
    return rgb


def _apply_overlay(rgb: Image.Image, overlay: Overlay) -> Image.Image:
    solid = Image.new("RGB", rgb.size, ImageColor.getrgb(overlay.color)[:3])
    blended = ImageChops.screen(rgb, solid) if overlay.blend == "screen" else ImageChops.multiply(rgb, solid)
    return Image.blend(rgb, blended, overlay.opacity)


def vignette_mask(width: int, height: int, strength: float) -> np.ndarray:
    """Per-pixel darkening in [0, strength/100]: 0 inside the inner radius, full past the outer one."""
    inner = min(width, height) * VIGNETTE_INNER
    outer = max(width, height) * VIGNETTE_OUTER
    ys, xs = np.mgrid[0:height, 0:width].astype(np.float64)
    distance = np.hypot(xs + 0.5 - width / 2.0, ys + 0.5 - height / 2.0)
    ramp = np.clip((distance - inner) / max(outer - inner, 1e-9), 0.0, 1.0)
    return ramp * (strength / 100.0)


def _apply_vignette(rgb: Image.Image, strength: float) -> Image.Image:
    arr = np.asarray(rgb, dtype=np.float64)
    mask = vignette_mask(rgb.width, rgb.height, strength)
    out = arr * (1.0 - mask)[:, :, np.newaxis]
    return Image.fromarray(np.floor(out + 0.5).astype(np.uint8))


def apply_adjustments(
    img: Image.Image,
    adjustments: Adjustments = DEFAULT_ADJUSTMENTS,
    preset: FilterPreset | None = None,
) -> Image.Image:
    """
    Return a new image with the preset merged over adjustments and applied in order:
    brightness, contrast, saturation, temperature, then the preset overlay, then the vignette.
    Transparency is carried through unchanged.
    """
    merged = merge_preset(adjustments, preset)
    alpha = img.getchannel("A") if img.mode in ("RGBA", "LA", "PA") else None

    rgb = img.convert("RGB")
    rgb = ImageEnhance.Brightness(rgb).enhance(merged.brightness / 100.0)
    rgb = ImageEnhance.Contrast(rgb).enhance(merged.contrast / 100.0)
    rgb = ImageEnhance.Color(rgb).enhance(merged.saturation / 100.0)
    rgb = _apply_temperature(rgb, merged.temperature)
    if preset is not None and preset.overlay is not None:
        rgb = _apply_overlay(rgb, preset.overlay)
    if merged.vignette > 0:
        rgb = _apply_vignette(rgb, merged.vignette)

    if alpha is None:
        return rgb
    rgb.putalpha(alpha)
    return rgb


def apply_crop(img: Image.Image, crop: CropRect) -> Image.Image:
    """Cut crop out of img. Parts of the rectangle outside the image come out transparent."""
    inside = crop.x >= 0 and crop.y >= 0 and crop.x + crop.width <= img.width and crop.y + crop.height <= img.height
    source = img if inside else img.convert("RGBA")
    return source.crop((crop.x, crop.y, crop.x + crop.width, crop.y + crop.height))


def export_image(img: Image.Image, fmt: str = "JPEG", quality: float = 0.92) -> bytes:
    """Encode the edited image as JPEG (flattened onto white) or PNG."""
    fmt = fmt.upper()
    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"export format must be one of {EXPORT_FORMATS}, got {fmt!r}")
    return encode_image(img, fmt, quality=quality)


def generate_filter_preview(img: Image.Image, preset: FilterPreset, preview_size: int = PREVIEW_SIZE) -> Image.Image:
    """Small copy (long side = preview_size) with the preset applied over default adjustments."""
    aspect = img.width / img.height
    if aspect >= 1:
        size = (preview_size, max(1, int(preview_size / aspect + 0.5)))
    else:
        size = (max(1, int(preview_size * aspect + 0.5)), preview_size)
    small = img.resize(size, Image.Resampling.LANCZOS)
    return apply_adjustments(small, DEFAULT_ADJUSTMENTS, preset)
