"""Scene detection (interval sampling + RGB difference threshold + debounce) with thumbnails at boundaries."""

from __future__ import annotations

import logging
import time
from typing import Callable

import numpy as np

from src.core.config import Settings, get_config
from src.core.errors import SceneDetectionError
from src.core.raster import create_surface
from src.models.entities import (
    DetectionOptions,
    DetectionState,
    SceneChange,
    Sensitivity,
    SensitivityPreset,
)
from src.video.frame_compare import COMPARISON_HEIGHT, COMPARISON_WIDTH, frame_difference
from src.video.thumbnail import THUMBNAIL_QUALITY, THUMBNAIL_WIDTH, capture_thumbnail
from src.video.video_source import VideoInput, VideoSource, open_video_source

_log = logging.getLogger(__name__)

DEBOUNCE_SEC = 1.0
# Sample times are k * interval, rounded to drop float noise (e.g. 3 * 0.1 = 0.30000000000000004).
_TIME_DECIMALS = 9

ProgressCallback = Callable[[float, float], None]


def _should_emit(difference: float, threshold: float, t: float, last_scene_ts: float) -> bool:
    """Threshold gate plus debounce: new scene when diff >= threshold and >= 1s since the last scene."""
    if difference < threshold:
        return False
    return (t - last_scene_ts) >= DEBOUNCE_SEC


def _confidence(difference: float) -> int:
    """min(100, diff) rounded half-up to an int."""
    return int(min(100.0, difference) + 0.5)


def sample_times(duration: float, sample_interval: float) -> list[float]:
    """Sample timestamps interval, 2*interval, ... while <= duration (clamped to duration)."""
    times: list[float] = []
    k = 1
    while True:
        t = round(k * sample_interval, _TIME_DECIMALS)
        if t > duration:
            break
        times.append(min(t, duration))
        k += 1
    return times


class SceneSegmenter:
    """
    Drives a VideoSource through the detection state machine:
    uninitialized -> metadata_loaded -> sampling -> complete, with failed reachable from any state.

    Exactly one "previous frame" comparison raster is alive during sampling; each sample is
    compared with the immediately preceding sample, not with the last detected scene.
    """

    def __init__(
        self,
        source: VideoSource,
        preset: SensitivityPreset,
        *,
        on_progress: ProgressCallback | None = None,
        thumbnail_width: int = THUMBNAIL_WIDTH,
        thumbnail_quality: float = THUMBNAIL_QUALITY,
    ) -> None:
        self._source = source
        self._preset = preset
        self._on_progress = on_progress
        self._thumbnail_width = thumbnail_width
        self._thumbnail_quality = thumbnail_quality
        self._state = DetectionState.uninitialized
        self._scenes: list[SceneChange] = []

    @property
    def state(self) -> DetectionState:
        return self._state

    async def run(self) -> list[SceneChange]:
        """Run detection to completion. On any error the state becomes failed and nothing is returned."""
        if self._state is not DetectionState.uninitialized:
            raise RuntimeError(f"SceneSegmenter already ran (state={self._state.value})")
        try:
            return await self._run()
        except BaseException:
            self._state = DetectionState.failed
            self._scenes = []
            raise

    async def _run(self) -> list[SceneChange]:
        if not self._source.loaded:
            await self._source.load_metadata()
        self._state = DetectionState.metadata_loaded
        duration = self._source.duration
        threshold = self._preset.threshold
        interval = self._preset.sample_interval

        if duration < interval:
            _log.info("Clip shorter than sample interval (%.3fs < %.3fs); single scene", duration, interval)
            await self._emit(0.0, 100)
            self._report(duration, duration)
            self._state = DetectionState.complete
            return list(self._scenes)

        comparison = create_surface(COMPARISON_WIDTH, COMPARISON_HEIGHT)
        await self._source.seek(0.0)
        previous: np.ndarray = self._source.draw_frame(comparison).copy()
        self._state = DetectionState.sampling
        await self._emit(0.0, 100)
        last_scene_ts = 0.0

        for t in sample_times(duration, interval):
            await self._source.seek(t)
            current = self._source.draw_frame(comparison).copy()
            difference = frame_difference(previous, current)
            if _should_emit(difference, threshold, t, last_scene_ts):
                await self._emit(t, _confidence(difference))
                last_scene_ts = t
            previous = current
            self._report(t, duration)

        self._report(duration, duration)
        self._state = DetectionState.complete
        return list(self._scenes)

    async def _emit(self, t: float, confidence: int) -> None:
        thumbnail_url = await capture_thumbnail(
            self._source,
            t,
            width=self._thumbnail_width,
            quality=self._thumbnail_quality,
        )
        scene = SceneChange(
            id=str(len(self._scenes)),
            timestamp=t,
            thumbnail_url=thumbnail_url,
            confidence=confidence,
        )
        self._scenes.append(scene)
        _log.debug("Scene %s at %.3fs (confidence %d)", scene.id, t, confidence)

    def _report(self, current: float, total: float) -> None:
        if self._on_progress is None:
            return
        try:
            self._on_progress(current, total)
        except Exception:
            # Progress is fire-and-forget; a failing listener must not abort the run.
            _log.warning("Progress callback raised at %.3fs", current, exc_info=True)


def _resolve_options(options: DetectionOptions | Sensitivity | str) -> DetectionOptions:
    if isinstance(options, DetectionOptions):
        return options
    return DetectionOptions(sensitivity=Sensitivity(options))


async def detect_scene_changes(
    file: VideoInput,
    options: DetectionOptions | Sensitivity | str = Sensitivity.medium,
    on_progress: ProgressCallback | None = None,
    *,
    backend: str | None = None,
    settings: Settings | None = None,
) -> list[SceneChange]:
    """
    Detect scene changes in a video file (path or bytes).

    Returns the full ordered list, or raises a SceneDetectionError subclass with a
    human-readable message; partial results are never returned. The video source is
    released on every exit path.
    """
    started = time.monotonic()
    try:
        opts = _resolve_options(options)
        cfg = settings or get_config()
        _log.info("Scene detection started (sensitivity=%s)", opts.sensitivity.value)
        async with open_video_source(file, backend=backend, settings=cfg) as source:
            segmenter = SceneSegmenter(
                source,
                opts.preset,
                on_progress=on_progress,
                thumbnail_width=cfg.thumbnail_width,
                thumbnail_quality=cfg.thumbnail_quality,
            )
            scenes = await segmenter.run()
    except SceneDetectionError as e:
        _log.warning("Scene detection failed: %s", e)
        raise
    except Exception as e:
        _log.warning("Scene detection failed: %s", e, exc_info=True)
        raise SceneDetectionError(f"Scene detection failed: {e}") from e
    _log.info("Scene detection finished: %d scenes in %.2fs", len(scenes), time.monotonic() - started)
    return scenes
