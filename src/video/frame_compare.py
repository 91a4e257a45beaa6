"""Frame comparator: mean absolute RGB difference between two rasters, as a percentage."""

import numpy as np

COMPARISON_WIDTH = 160
COMPARISON_HEIGHT = 120
_MAX_CHANNEL_DIFF = 255 * 3


def frame_difference(a: np.ndarray, b: np.ndarray) -> float:
    """
    Percentage visual difference in [0, 100] between two (h, w, 4) RGBA rasters.

    Sums |R1-R2| + |G1-G2| + |B1-B2| over every pixel (alpha ignored) and normalizes by
    total_pixels * 255 * 3. Symmetric, and 0.0 for identical inputs.
    """
    if a.shape != b.shape:
        raise ValueError(f"raster size mismatch: {a.shape} vs {b.shape}")
    if a.ndim != 3 or a.shape[2] < 3:
        raise ValueError(f"expected (h, w, 4) rasters, got shape {a.shape}")
    total_pixels = a.shape[0] * a.shape[1]
    if total_pixels == 0:
        return 0.0
    # int32 so uint8 subtraction cannot wrap around.
    diff = np.abs(a[:, :, :3].astype(np.int32) - b[:, :, :3].astype(np.int32))
    total = int(diff.sum(dtype=np.int64))
    return total / (total_pixels * _MAX_CHANNEL_DIFF) * 100.0
