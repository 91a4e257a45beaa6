"""Pytest fixtures: config isolation and an in-memory synthetic VideoSource."""

from pathlib import Path
from typing import Callable

import numpy as np
import pytest

from src.core import config as config_module
from src.video.video_source import VideoMetadata, VideoSource

Color = tuple[int, int, int]


class SyntheticVideoSource(VideoSource):
    """
    VideoSource whose frames come from frame_fn(t) -> RGB color (solid frame) or (h, w, 3) array.
    Records every decode so tests can assert on seek order. fail_after makes decodes past that
    timestamp raise RuntimeError.
    """

    def __init__(
        self,
        path: str | Path,
        frame_fn: Callable[[float], Color | np.ndarray],
        *,
        duration: float,
        width: int = 64,
        height: int = 48,
        fail_after: float | None = None,
    ) -> None:
        super().__init__(path)
        self._frame_fn = frame_fn
        self._synthetic_meta = VideoMetadata(duration=duration, width=width, height=height)
        self._fail_after = fail_after
        self.decoded_at: list[float] = []
        self.closed = False

    async def _probe(self) -> VideoMetadata:
        return self._synthetic_meta

    async def _decode_at(self, t: float) -> np.ndarray | None:
        if self._fail_after is not None and t > self._fail_after:
            raise RuntimeError(f"decoder crashed at {t}")
        self.decoded_at.append(t)
        value = self._frame_fn(t)
        if isinstance(value, np.ndarray):
            return value
        frame = np.empty((self._synthetic_meta.height, self._synthetic_meta.width, 3), dtype=np.uint8)
        frame[:, :] = value
        return frame

    def _close(self) -> None:
        self.closed = True


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch, tmp_path):
    """Each test starts with no cached config and no FLUX_CONFIG / VIDEO_BACKEND from the environment."""
    monkeypatch.delenv("FLUX_CONFIG", raising=False)
    monkeypatch.delenv("VIDEO_BACKEND", raising=False)
    monkeypatch.chdir(tmp_path)
    config_module._config = None  # type: ignore[attr-defined]
    yield
    config_module._config = None  # type: ignore[attr-defined]


@pytest.fixture
def make_source(tmp_path):
    """Factory for SyntheticVideoSource backed by a placeholder file (load_metadata checks existence)."""

    def _make(frame_fn: Callable[[float], Color | np.ndarray], duration: float, **kwargs) -> SyntheticVideoSource:
        path = tmp_path / "synthetic.mp4"
        path.write_bytes(b"synthetic")
        return SyntheticVideoSource(path, frame_fn, duration=duration, **kwargs)

    return _make


def black_then_white(switch_at: float) -> Callable[[float], Color]:
    def _fn(t: float) -> Color:
        return (0, 0, 0) if t < switch_at else (255, 255, 255)

    return _fn


def static_color(color: Color = (40, 90, 160)) -> Callable[[float], Color]:
    return lambda _t: color
