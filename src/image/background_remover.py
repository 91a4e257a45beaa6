"""Chroma-key background removal: per-pixel Euclidean RGB distance to a target color, soft alpha edge."""

import math

import numpy as np

MAX_COLOR_DISTANCE = math.sqrt(255 * 255 * 3)
EDGE_FRACTION = 0.1

RGB = tuple[int, int, int]


def remove_background(canvas: np.ndarray, target_color: RGB, tolerance: float) -> np.ndarray:
    """
    Make pixels near target_color transparent. Modifies the RGBA canvas in place and returns it.

    threshold = tolerance% of the max RGB distance. Pixels with distance <= threshold get
    alpha 0, except the outer 10% band (threshold - edge .. threshold) which ramps alpha up
    toward 255. Pixels beyond the threshold keep their alpha.
    """
    if not 0.0 <= tolerance <= 100.0:
        raise ValueError(f"tolerance must be within [0, 100], got {tolerance}")
    if canvas.ndim != 3 or canvas.shape[2] != 4:
        raise ValueError(f"expected (h, w, 4) canvas, got shape {canvas.shape}")

    rgb = canvas[:, :, :3].astype(np.float64)
    target = np.asarray(target_color, dtype=np.float64).reshape(1, 1, 3)
    distance = np.sqrt(((rgb - target) ** 2).sum(axis=2))

    threshold = tolerance / 100.0 * MAX_COLOR_DISTANCE
    smooth_edge = threshold * EDGE_FRACTION

    inside = distance <= threshold
    alpha = canvas[:, :, 3]
    if smooth_edge <= 0:
        # tolerance 0: only exact matches, no ramp to interpolate over.
        alpha[inside] = 0
        return canvas

    edge = inside & (distance >= threshold - smooth_edge)
    core = inside & ~edge
    alpha[core] = 0
    edge_factor = (threshold - distance[edge]) / smooth_edge
    alpha[edge] = np.floor((1.0 - edge_factor) * 255.0 + 0.5).astype(np.uint8)
    return canvas


def pick_color(canvas: np.ndarray, x: int, y: int) -> RGB:
    """RGB at (x, y), with coordinates clamped into the canvas."""
    height, width = canvas.shape[:2]
    cx = max(0, min(int(x), width - 1))
    cy = max(0, min(int(y), height - 1))
    r, g, b = (int(v) for v in canvas[cy, cx, :3])
    return r, g, b
