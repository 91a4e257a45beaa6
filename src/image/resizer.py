"""Resize images to explicit dimensions, with aspect-lock and percentage helpers."""

import logging
from dataclasses import dataclass
from pathlib import Path

from PIL import Image

from src.core.raster import encode_image, to_data_url

_log = logging.getLogger(__name__)

RESIZE_FORMATS = ("JPEG", "PNG", "WEBP")
PERCENT_PRESETS = (25, 50, 75, 100)
DEFAULT_RESIZE_QUALITY = 0.85


@dataclass(frozen=True)
class ResizeOptions:
    width: int
    height: int
    format: str = "JPEG"
    quality: float = DEFAULT_RESIZE_QUALITY

    def __post_init__(self) -> None:
        if self.width < 1 or self.height < 1:
            raise ValueError(f"target size must be at least 1x1, got {self.width}x{self.height}")
        if self.format.upper() not in RESIZE_FORMATS:
            raise ValueError(f"format must be one of {RESIZE_FORMATS}, got {self.format!r}")
        if not 0.1 <= self.quality <= 1.0:
            raise ValueError(f"quality must be within [0.1, 1.0], got {self.quality}")


@dataclass(frozen=True)
class ResizedImage:
    payload: bytes
    data_url: str
    width: int
    height: int


def locked_size(src_width: int, src_height: int, *, width: int | None = None, height: int | None = None) -> tuple[int, int]:
    """
    Fill in the missing side so the source aspect ratio is kept. Exactly one of width or
    height must be given; the derived side is rounded half up and never below 1.
    """
    if (width is None) == (height is None):
        raise ValueError("pass exactly one of width or height")
    if width is not None:
        return width, max(1, int(width * src_height / src_width + 0.5))
    return max(1, int(height * src_width / src_height + 0.5)), height


def scaled_size(src_width: int, src_height: int, percent: float) -> tuple[int, int]:
    if percent <= 0:
        raise ValueError(f"percent must be positive, got {percent}")
    factor = percent / 100.0
    return max(1, int(src_width * factor + 0.5)), max(1, int(src_height * factor + 0.5))


def get_image_info(path: str | Path) -> tuple[int, int]:
    """Pixel dimensions without decoding the image data."""
    with Image.open(path) as img:
        return img.size


def resize_image(img: Image.Image, options: ResizeOptions) -> ResizedImage:
    fmt = options.format.upper()
    if img.mode not in ("RGB", "RGBA"):
        img = img.convert("RGBA")
    resized = img.resize((options.width, options.height), Image.Resampling.LANCZOS)
    payload = encode_image(resized, fmt, quality=options.quality)
    _log.debug(
        "Resized %dx%d -> %dx%d as %s (%d bytes)",
        img.width,
        img.height,
        options.width,
        options.height,
        fmt,
        len(payload),
    )
    return ResizedImage(
        payload=payload,
        data_url=to_data_url(payload, fmt),
        width=options.width,
        height=options.height,
    )
