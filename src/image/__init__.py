"""Image tools: chroma-key background removal, photo editing and resizing."""

from src.image.background_remover import pick_color, remove_background
from src.image.editor import (
    FILTER_PRESETS,
    Adjustments,
    CropRect,
    apply_adjustments,
    apply_crop,
    export_image,
    generate_filter_preview,
)
from src.image.resizer import ResizeOptions, locked_size, resize_image, scaled_size

__all__ = [
    "FILTER_PRESETS",
    "Adjustments",
    "CropRect",
    "ResizeOptions",
    "apply_adjustments",
    "apply_crop",
    "export_image",
    "generate_filter_preview",
    "locked_size",
    "pick_color",
    "remove_background",
    "resize_image",
    "scaled_size",
]
