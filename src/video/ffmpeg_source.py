"""FFmpegVideoSource: ffprobe metadata plus one short-lived FFmpeg decode per seek (rawvideo rgb24 on stdout)."""

from __future__ import annotations

import asyncio
import json
import logging
import shlex
from pathlib import Path

import numpy as np

from src.core.errors import FrameSeekError, MediaLoadError
from src.video.video_source import VideoMetadata, VideoSource

_log = logging.getLogger(__name__)

# A seek exactly at the container duration decodes nothing; pull it back by this much.
END_MARGIN_SEC = 0.05
_STDERR_TAIL_MAX_LINES = 20


def _cmd_to_repro(cmd: list[str]) -> str:
    return " ".join(shlex.quote(str(c)) for c in cmd)


def _stderr_tail(stderr: bytes) -> str:
    text = stderr.decode("utf-8", errors="replace").strip()
    lines = text.splitlines()
    return "\n".join(lines[-_STDERR_TAIL_MAX_LINES:])


def parse_probe_output(stdout: str) -> VideoMetadata:
    """
    Parse `ffprobe -of json` output with stream width/height and format/stream duration.
    Raises ValueError on missing or malformed fields.
    """
    try:
        data = json.loads(stdout or "{}")
    except json.JSONDecodeError as e:
        raise ValueError(f"ffprobe returned invalid JSON: {e}") from e
    streams = data.get("streams") or []
    if not streams:
        raise ValueError("ffprobe returned no video stream")
    stream = streams[0]
    rotation = _stream_rotation(stream)
    duration_raw = (data.get("format") or {}).get("duration") or stream.get("duration")
    if duration_raw in (None, "N/A"):
        raise ValueError("ffprobe returned no duration")
    try:
        duration = float(duration_raw)
        width, height = int(stream["width"]), int(stream["height"])
    except (KeyError, TypeError, ValueError) as e:
        raise ValueError(f"ffprobe unexpected output: {stdout!r}") from e
    # ffmpeg applies the display rotation when decoding, so quarter turns swap the frame axes.
    if rotation % 180 == 90:
        width, height = height, width
    return VideoMetadata(duration=duration, width=width, height=height)


def _stream_rotation(stream: dict) -> int:
    """Display rotation in degrees, normalized to [0, 360). Reads side data first, then the legacy rotate tag."""
    raw = None
    for side_data in stream.get("side_data_list") or []:
        if "rotation" in side_data:
            raw = side_data["rotation"]
            break
    if raw is None:
        raw = (stream.get("tags") or {}).get("rotate")
    if raw in (None, ""):
        return 0
    try:
        return int(round(float(raw))) % 360
    except (TypeError, ValueError):
        _log.warning("Ignoring unparsable stream rotation %r", raw)
        return 0


class FFmpegVideoSource(VideoSource):
    """
    Seek/decode through the ffmpeg CLI.

    Each seek runs `ffmpeg -ss t -i path -frames:v 1` (fast input seeking) and reads exactly
    width*height*3 bytes of rgb24 from stdout. Subprocesses are awaited, never polled.
    """

    def __init__(
        self,
        path: str | Path,
        *,
        ffmpeg_path: str = "ffmpeg",
        ffprobe_path: str = "ffprobe",
    ) -> None:
        super().__init__(path)
        self._ffmpeg = ffmpeg_path
        self._ffprobe = ffprobe_path

    def probe_cmd(self) -> list[str]:
        return [
            self._ffprobe,
            "-v",
            "error",
            "-select_streams",
            "v:0",
            "-show_entries",
            "stream=width,height,duration:stream_tags=rotate:stream_side_data=rotation:format=duration",
            "-of",
            "json",
            str(self._path),
        ]

    def decode_cmd(self, t: float) -> list[str]:
        """Return the exact FFmpeg argv used to decode one frame at t."""
        return [
            self._ffmpeg,
            "-hide_banner",
            "-loglevel",
            "error",
            "-ss",
            f"{t:.3f}",
            "-i",
            str(self._path),
            "-frames:v",
            "1",
            "-f",
            "rawvideo",
            "-pix_fmt",
            "rgb24",
            "pipe:1",
        ]

    async def _run(self, cmd: list[str]) -> tuple[int, bytes, bytes]:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await process.communicate()
        finally:
            # Cancelled mid-decode: do not leave the child running after the seek is abandoned.
            if process.returncode is None:
                try:
                    process.kill()
                except ProcessLookupError:
                    pass
                await process.wait()
        return int(process.returncode or 0), stdout, stderr

    async def _probe(self) -> VideoMetadata:
        cmd = self.probe_cmd()
        try:
            returncode, stdout, stderr = await self._run(cmd)
        except OSError as e:
            raise MediaLoadError(f"Failed to load video: cannot run {self._ffprobe}: {e}") from e
        if returncode != 0:
            _log.warning("ffprobe failed (%s): %s", _cmd_to_repro(cmd), _stderr_tail(stderr))
            raise MediaLoadError(f"Failed to load video: {self._path.name}")
        try:
            return parse_probe_output(stdout.decode("utf-8", errors="replace"))
        except ValueError as e:
            raise MediaLoadError(f"Failed to load video: {e}") from e

    async def _decode_at(self, t: float) -> np.ndarray | None:
        seek_pts = max(0.0, min(t, self.duration - END_MARGIN_SEC))
        cmd = self.decode_cmd(seek_pts)
        try:
            returncode, stdout, stderr = await self._run(cmd)
        except OSError as e:
            raise FrameSeekError(f"cannot run {self._ffmpeg}: {e}") from e
        frame_size = self.width * self.height * 3
        if returncode != 0 or len(stdout) < frame_size:
            _log.warning(
                "FFmpeg decode at %.3fs returned %d bytes (rc=%d). Repro: %s\n%s",
                seek_pts,
                len(stdout),
                returncode,
                _cmd_to_repro(cmd),
                _stderr_tail(stderr),
            )
            return None
        return np.frombuffer(stdout[:frame_size], dtype=np.uint8).reshape((self.height, self.width, 3))
