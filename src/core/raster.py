"""RGBA pixel surfaces (numpy) and their Pillow boundary: allocation, file load/save, data URL encoding."""

import base64
import io
from pathlib import Path

import numpy as np
from PIL import Image

from src.core.errors import CanvasContextError

_DATA_URL_PREFIX = "data:"


def create_surface(width: int, height: int) -> np.ndarray:
    """Allocate a zeroed (height, width, 4) uint8 RGBA surface. Raises CanvasContextError on bad size or OOM."""
    if width <= 0 or height <= 0:
        raise CanvasContextError(f"Failed to create canvas context: invalid size {width}x{height}")
    try:
        return np.zeros((height, width, 4), dtype=np.uint8)
    except MemoryError as e:
        raise CanvasContextError(f"Failed to create canvas context: {width}x{height}") from e


def surface_from_image(img: Image.Image) -> np.ndarray:
    """Copy a PIL image into a new writable RGBA surface."""
    return np.array(img.convert("RGBA"), dtype=np.uint8)


def surface_to_image(surface: np.ndarray) -> Image.Image:
    """Wrap an RGBA surface as a PIL image (copy)."""
    if surface.ndim != 3 or surface.shape[2] != 4:
        raise ValueError(f"expected (h, w, 4) surface, got shape {surface.shape}")
    return Image.fromarray(np.ascontiguousarray(surface, dtype=np.uint8))


def load_surface(path: str | Path) -> np.ndarray:
    """Load an image file into an RGBA surface."""
    path = Path(path)
    with Image.open(path) as img:
        img.load()
        return surface_from_image(img)


def save_surface(surface: np.ndarray, path: str | Path, *, quality: float = 0.92) -> Path:
    """
    Save a surface; format follows the file suffix. JPEG drops alpha (flattened onto white)
    since the format has no transparency.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    img = surface_to_image(surface)
    if path.suffix.lower() in (".jpg", ".jpeg"):
        _flatten(img).save(path, "JPEG", quality=_pil_quality(quality))
    else:
        img.save(path)
    return path


_MIME_TYPES = {"JPEG": "image/jpeg", "PNG": "image/png", "WEBP": "image/webp"}


def encode_image(img: Image.Image, fmt: str = "JPEG", *, quality: float = 0.92) -> bytes:
    """Encode a PIL image as JPEG, PNG or WebP bytes; quality is on the 0-1 canvas scale (PNG ignores it)."""
    fmt = fmt.upper()
    buf = io.BytesIO()
    if fmt == "JPEG":
        _flatten(img).save(buf, "JPEG", quality=_pil_quality(quality))
    elif fmt == "WEBP":
        img.save(buf, "WEBP", quality=_pil_quality(quality))
    elif fmt == "PNG":
        img.save(buf, "PNG")
    else:
        raise ValueError(f"unsupported image format: {fmt!r}")
    return buf.getvalue()


def to_data_url(payload: bytes, fmt: str) -> str:
    return f"{_DATA_URL_PREFIX}{_MIME_TYPES[fmt.upper()]};base64,{base64.b64encode(payload).decode('ascii')}"


def encode_data_url(surface: np.ndarray, *, fmt: str = "JPEG", quality: float = 0.8) -> str:
    """Encode a surface as a base64 data URL (image/jpeg or image/png), quality on the 0-1 canvas scale."""
    fmt = fmt.upper()
    if fmt not in ("JPEG", "PNG"):
        raise ValueError(f"unsupported data URL format: {fmt!r}")
    return to_data_url(encode_image(surface_to_image(surface), fmt, quality=quality), fmt)


def decode_data_url(url: str) -> tuple[str, bytes]:
    """Return (mime, payload bytes) for a base64 data URL."""
    if not url.startswith(_DATA_URL_PREFIX) or ";base64," not in url:
        raise ValueError("not a base64 data URL")
    header, payload = url[len(_DATA_URL_PREFIX) :].split(";base64,", 1)
    return header, base64.b64decode(payload)


def _pil_quality(quality: float) -> int:
    """Map 0-1 canvas quality to Pillow's 1-95 JPEG quality."""
    return max(1, min(95, int(round(quality * 100))))


def _flatten(img: Image.Image) -> Image.Image:
    if img.mode != "RGBA":
        return img.convert("RGB")
    background = Image.new("RGB", img.size, (255, 255, 255))
    background.paste(img, mask=img.getchannel("A"))
    return background
