"""Bottom-right watermark eraser for rasterized PDF pages: variance check plus column-wise background fill."""

import logging
import math
from dataclasses import dataclass
from typing import Callable, Sequence

import numpy as np

_log = logging.getLogger(__name__)

# Region geometry at scale 1.0, measured from the bottom-right corner (generous margins
# around the "Made with NotebookLM" badge).
REGION_RIGHT_OFFSET = 130
REGION_BOTTOM_OFFSET = 38
REGION_WIDTH = 128
REGION_HEIGHT = 36
BACKGROUND_STRIP_HEIGHT = 10
VARIANCE_RATIO = 1.5
FILL_SAMPLE_OFFSET = 5
FILL_SAMPLE_STEP = 2
FILL_SAMPLES = 3


@dataclass(frozen=True)
class WatermarkRegion:
    x: int
    y: int
    width: int
    height: int


@dataclass(frozen=True)
class WatermarkDetection:
    detected: bool
    confidence: float
    region: WatermarkRegion


def get_watermark_region(canvas_width: int, canvas_height: int, scale: float) -> WatermarkRegion:
    """Region scaled by the render scale and clipped to the canvas."""
    x = canvas_width - math.ceil(REGION_RIGHT_OFFSET * scale)
    y = canvas_height - math.ceil(REGION_BOTTOM_OFFSET * scale)
    width = math.ceil(REGION_WIDTH * scale)
    height = math.ceil(REGION_HEIGHT * scale)
    x0, y0 = max(0, x), max(0, y)
    x1 = min(canvas_width, x + width)
    y1 = min(canvas_height, y + height)
    return WatermarkRegion(x=x0, y=y0, width=max(0, x1 - x0), height=max(0, y1 - y0))


def color_variance(pixels: np.ndarray) -> float:
    """Mean squared deviation from the mean color, averaged over R, G, B. 0.0 for empty input."""
    rgb = pixels[..., :3].reshape(-1, 3).astype(np.float64)
    if rgb.shape[0] == 0:
        return 0.0
    return float(rgb.var(axis=0).mean())


def detect_watermark(canvas: np.ndarray, scale: float) -> WatermarkDetection:
    """Compare the region's variance with the strip directly above it; > 1.5x means a watermark."""
    height, width = canvas.shape[:2]
    region = get_watermark_region(width, height, scale)
    wm = canvas[region.y : region.y + region.height, region.x : region.x + region.width]

    sample_height = min(math.ceil(BACKGROUND_STRIP_HEIGHT * scale), region.y)
    bg = canvas[region.y - sample_height : region.y, region.x : region.x + region.width]

    wm_variance = color_variance(wm)
    bg_variance = color_variance(bg)
    detected = wm_variance > bg_variance * VARIANCE_RATIO
    confidence = min(wm_variance / max(bg_variance, 1.0), 1.0)
    return WatermarkDetection(detected=detected, confidence=confidence, region=region)


def remove_watermark(canvas: np.ndarray, scale: float) -> np.ndarray:
    """
    Overwrite each region column with the rounded average of 3 pixels sampled above it
    (at offsets ceil(5*scale) + k*ceil(2*scale)). Modifies canvas in place and returns it.
    """
    height, width = canvas.shape[:2]
    region = get_watermark_region(width, height, scale)
    if region.width == 0 or region.height == 0:
        return canvas
    offset = math.ceil(FILL_SAMPLE_OFFSET * scale)
    step = math.ceil(FILL_SAMPLE_STEP * scale)
    rows = [max(0, region.y - offset - k * step) for k in range(FILL_SAMPLES)]
    x0, x1 = region.x, region.x + region.width

    samples = canvas[rows, x0:x1, :3].astype(np.float64)  # (samples, columns, 3)
    fill = np.floor(samples.mean(axis=0) + 0.5).astype(np.uint8)

    canvas[region.y : region.y + region.height, x0:x1, :3] = fill[np.newaxis, :, :]
    if canvas.shape[2] == 4:
        canvas[region.y : region.y + region.height, x0:x1, 3] = 255
    return canvas


def remove_watermark_from_all(
    canvases: Sequence[np.ndarray],
    scale: float,
    on_progress: Callable[[int, int], None] | None = None,
) -> list[np.ndarray]:
    """Apply remove_watermark to every page, reporting (done, total) after each."""
    total = len(canvases)
    results: list[np.ndarray] = []
    for i, canvas in enumerate(canvases):
        results.append(remove_watermark(canvas, scale))
        if on_progress is not None:
            on_progress(i + 1, total)
    _log.info("Removed watermark region from %d page(s)", total)
    return results
