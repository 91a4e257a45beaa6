"""Video scene-change detection (frame sampling, RGB difference, debounce, thumbnails)."""

from src.video.scene_segmenter import SceneSegmenter, detect_scene_changes
from src.video.video_source import OpenCVVideoSource, VideoSource, open_video_source

__all__ = [
    "OpenCVVideoSource",
    "SceneSegmenter",
    "VideoSource",
    "detect_scene_changes",
    "open_video_source",
]
