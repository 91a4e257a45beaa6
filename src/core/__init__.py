from src.core.config import get_config
from src.core.errors import CanvasContextError, FluxError, MediaLoadError, SceneDetectionError
from src.core.logging import setup_logging

__all__ = ["CanvasContextError", "FluxError", "MediaLoadError", "SceneDetectionError", "get_config", "setup_logging"]
