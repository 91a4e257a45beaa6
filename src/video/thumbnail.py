"""Scene thumbnails (aspect-preserving JPEG data URLs) and timeline timestamp formatting."""

import logging

from src.core.raster import create_surface, encode_data_url
from src.video.video_source import VideoSource

_log = logging.getLogger(__name__)

THUMBNAIL_WIDTH = 320
THUMBNAIL_QUALITY = 0.8
SEEK_EPSILON_SEC = 0.01


def thumbnail_size(width: int, src_width: int, src_height: int) -> tuple[int, int]:
    """Return (width, height) with height = width * src_height / src_width rounded half up, at least 1."""
    if width <= 0 or src_width <= 0:
        raise ValueError("width and source width must be positive")
    return width, max(1, int(width * src_height / src_width + 0.5))


async def capture_thumbnail(
    source: VideoSource,
    t: float,
    *,
    width: int = THUMBNAIL_WIDTH,
    quality: float = THUMBNAIL_QUALITY,
) -> str:
    """
    Render the frame at t as a JPEG data URL at the given width (aspect preserved).

    Seeks only when the source's current position differs from t by more than SEEK_EPSILON_SEC,
    so calls right after a comparison seek reuse the decoded frame.
    """
    current = source.current_time
    if current is None or abs(current - t) > SEEK_EPSILON_SEC:
        await source.seek(t)
    w, h = thumbnail_size(width, source.width, source.height)
    surface = create_surface(w, h)
    source.draw_frame(surface)
    url = encode_data_url(surface, fmt="JPEG", quality=quality)
    _log.debug("Captured %dx%d thumbnail at %.3fs (%d chars)", w, h, t, len(url))
    return url


def format_timestamp(seconds: float) -> str:
    """Format seconds as M:SS, or H:MM:SS from one hour up."""
    total = int(max(0.0, seconds))
    hours, rem = divmod(total, 3600)
    minutes, secs = divmod(rem, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"
