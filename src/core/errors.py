"""Error taxonomy shared by the video, image and PDF tools. Every failure is terminal for the current run."""


class FluxError(Exception):
    """Base class for errors raised by the media tools."""

    pass


class SceneDetectionError(FluxError):
    """Raised at the detect_scene_changes boundary; the message is safe to show to users."""

    pass


class MediaLoadError(SceneDetectionError):
    """Raised when video metadata fails to load (missing file, corrupt container, unsupported codec)."""

    pass


class FrameSeekError(SceneDetectionError):
    """Raised when a seek completes without a decodable frame."""

    pass


class CanvasContextError(FluxError):
    """Raised when a pixel surface cannot be allocated (bad dimensions or memory exhaustion)."""

    pass
