"""VideoSource: owned decoder handle with async seek and draw-into-surface (OpenCV backend + factory)."""

from __future__ import annotations

import asyncio
import logging
import math
import tempfile
import threading
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, BinaryIO, Union

import cv2
import numpy as np

from src.core.config import Settings, get_config
from src.core.errors import FrameSeekError, MediaLoadError

_log = logging.getLogger(__name__)

VideoInput = Union[str, Path, bytes, bytearray, BinaryIO]


@dataclass(frozen=True)
class VideoMetadata:
    duration: float
    width: int
    height: int


def _validate_metadata(meta: VideoMetadata, path: Path) -> VideoMetadata:
    if not (math.isfinite(meta.duration) and meta.duration > 0):
        raise MediaLoadError(f"Failed to load video: invalid duration for {path.name}")
    if meta.width <= 0 or meta.height <= 0:
        raise MediaLoadError(f"Failed to load video: invalid dimensions {meta.width}x{meta.height}")
    return meta


class VideoSource(ABC):
    """
    One decoder instance over one video file.

    Lifecycle: load_metadata() -> seek()/draw_frame() pairs -> release().
    Seeks mutate the shared playback position, so seek+draw pairs must be serialized;
    a second seek while one is in flight raises RuntimeError.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._meta: VideoMetadata | None = None
        self._frame: np.ndarray | None = None  # (h, w, 3) RGB at native resolution
        self._current_time: float | None = None
        self._seeking = False
        self._released = False

    @property
    def path(self) -> Path:
        return self._path

    @property
    def loaded(self) -> bool:
        return self._meta is not None

    @property
    def duration(self) -> float:
        return self._require_meta().duration

    @property
    def width(self) -> int:
        return self._require_meta().width

    @property
    def height(self) -> int:
        return self._require_meta().height

    @property
    def current_time(self) -> float | None:
        """Timestamp of the currently decoded frame; None before the first seek."""
        return self._current_time

    async def load_metadata(self) -> VideoMetadata:
        """Probe duration and natural size. Raises MediaLoadError; never retried."""
        if self._released:
            raise MediaLoadError("Failed to load video: source already released")
        if not self._path.exists():
            raise MediaLoadError(f"Failed to load video: file not found: {self._path}")
        meta = _validate_metadata(await self._probe(), self._path)
        self._meta = meta
        _log.debug(
            "Loaded video metadata %s: duration=%.3fs size=%dx%d",
            self._path.name,
            meta.duration,
            meta.width,
            meta.height,
        )
        return meta

    async def seek(self, t: float) -> None:
        """Seek to t (clamped to [0, duration]) and suspend until a decoded frame is available."""
        meta = self._require_meta()
        if self._seeking:
            raise RuntimeError("concurrent seek on one VideoSource; serialize seek+draw pairs")
        target = min(max(0.0, float(t)), meta.duration)
        self._seeking = True
        try:
            frame = await self._decode_at(target)
        finally:
            self._seeking = False
        if frame is None or frame.size == 0:
            raise FrameSeekError(f"No frame decoded at {target:.3f}s")
        self._frame = frame
        self._current_time = target

    def draw_frame(self, surface: np.ndarray) -> np.ndarray:
        """Rasterize the current frame into a (h, w, 4) RGBA surface, scaled to the surface size."""
        if self._frame is None:
            raise FrameSeekError("draw_frame called before a successful seek")
        if surface.ndim != 3 or surface.shape[2] != 4:
            raise ValueError(f"expected (h, w, 4) surface, got shape {surface.shape}")
        h, w = surface.shape[:2]
        frame = self._frame
        if frame.shape[:2] != (h, w):
            interpolation = cv2.INTER_AREA if w < frame.shape[1] else cv2.INTER_LINEAR
            frame = cv2.resize(frame, (w, h), interpolation=interpolation)
        surface[:, :, :3] = frame
        surface[:, :, 3] = 255
        return surface

    def release(self) -> None:
        """Close the decoder. Idempotent."""
        if self._released:
            return
        self._released = True
        self._frame = None
        self._close()

    def _require_meta(self) -> VideoMetadata:
        if self._meta is None:
            raise RuntimeError("video metadata not loaded; call load_metadata() first")
        return self._meta

    @abstractmethod
    async def _probe(self) -> VideoMetadata:
        """Return duration and natural size; raise MediaLoadError when the container cannot be read."""

    @abstractmethod
    async def _decode_at(self, t: float) -> np.ndarray | None:
        """Return the (h, w, 3) RGB frame at or after t, or None if nothing decoded."""

    def _close(self) -> None:
        pass


class OpenCVVideoSource(VideoSource):
    """
    cv2.VideoCapture backend. Blocking capture calls run in a worker thread via asyncio.to_thread.

    A cancelled seek leaves its read running on the worker thread, so reads and release()
    share one lock: release waits for an in-flight read instead of freeing the capture under it.
    """

    def __init__(self, path: str | Path) -> None:
        super().__init__(path)
        self._capture: cv2.VideoCapture | None = None
        self._frame_count = 0
        self._capture_lock = threading.Lock()

    async def _probe(self) -> VideoMetadata:
        capture = await asyncio.to_thread(cv2.VideoCapture, str(self._path))
        if not capture.isOpened():
            capture.release()
            raise MediaLoadError(f"Failed to load video: {self._path.name}")
        self._capture = capture
        fps = float(capture.get(cv2.CAP_PROP_FPS) or 0.0)
        self._frame_count = int(capture.get(cv2.CAP_PROP_FRAME_COUNT) or 0)
        if fps <= 0 or self._frame_count <= 0:
            raise MediaLoadError(f"Failed to load video: no frame rate or frame count for {self._path.name}")
        return VideoMetadata(
            duration=self._frame_count / fps,
            width=int(capture.get(cv2.CAP_PROP_FRAME_WIDTH)),
            height=int(capture.get(cv2.CAP_PROP_FRAME_HEIGHT)),
        )

    async def _decode_at(self, t: float) -> np.ndarray | None:
        return await asyncio.to_thread(self._read_at, t)

    def _read_at(self, t: float) -> np.ndarray | None:
        with self._capture_lock:
            return self._read_locked(t)

    def _read_locked(self, t: float) -> np.ndarray | None:
        capture = self._capture
        if capture is None:
            return None
        capture.set(cv2.CAP_PROP_POS_MSEC, t * 1000.0)
        ok, frame = capture.read()
        if not ok and self._frame_count > 0:
            # Seeking to the very end lands past the last frame; show the final frame instead.
            capture.set(cv2.CAP_PROP_POS_FRAMES, self._frame_count - 1)
            ok, frame = capture.read()
        if not ok or frame is None:
            return None
        return cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)

    def _close(self) -> None:
        with self._capture_lock:
            if self._capture is not None:
                self._capture.release()
                self._capture = None


def create_video_source(
    path: str | Path,
    *,
    backend: str | None = None,
    settings: Settings | None = None,
) -> VideoSource:
    """Build an unloaded VideoSource for the configured (or given) backend."""
    cfg = settings or get_config()
    name = backend or cfg.video_backend
    if name == "opencv":
        return OpenCVVideoSource(path)
    if name == "ffmpeg":
        from src.video.ffmpeg_source import FFmpegVideoSource

        return FFmpegVideoSource(path, ffmpeg_path=cfg.ffmpeg_path, ffprobe_path=cfg.ffprobe_path)
    raise ValueError(f"unknown video backend: {name!r}")


def _spill_to_tempfile(data: bytes) -> Path:
    with tempfile.NamedTemporaryFile(prefix="flux-video-", suffix=".bin", delete=False) as f:
        f.write(data)
        return Path(f.name)


@asynccontextmanager
async def open_video_source(
    file: VideoInput,
    *,
    backend: str | None = None,
    settings: Settings | None = None,
) -> AsyncIterator[VideoSource]:
    """
    Acquire a VideoSource for the duration of the block; always released on exit.

    Bytes and file-like inputs are spilled to a temporary file that is unlinked on release.
    Metadata is not loaded here: the caller decides when that suspension happens.
    """
    temp_path: Path | None = None
    if isinstance(file, (bytes, bytearray)):
        temp_path = await asyncio.to_thread(_spill_to_tempfile, bytes(file))
        path = temp_path
    elif isinstance(file, (str, Path)):
        path = Path(file)
    else:
        temp_path = await asyncio.to_thread(_spill_to_tempfile, file.read())
        path = temp_path
    source = create_video_source(path, backend=backend, settings=settings)
    try:
        yield source
    finally:
        source.release()
        if temp_path is not None:
            temp_path.unlink(missing_ok=True)
