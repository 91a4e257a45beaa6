"""Application configuration (Pydantic v2). Load from flux_config.yml with optional env override."""

import os
from pathlib import Path
from typing import Literal, Mapping

import yaml
from pydantic import BaseModel, field_validator


DEFAULT_VIDEO_BACKEND = "opencv"
DEFAULT_CONFIG_ENV_VAR = "FLUX_CONFIG"
DEFAULT_CONFIG_FILENAME = "flux_config.yml"
BACKEND_ENV_VAR = "VIDEO_BACKEND"


class Settings(BaseModel):
    """
    Tool config loaded from YAML.

    By default, video_backend may be overridden by the VIDEO_BACKEND environment variable
    when loading the default config (but not when an explicit config_path is provided).
    """

    model_config = {"extra": "ignore"}

    video_backend: Literal["opencv", "ffmpeg"] = DEFAULT_VIDEO_BACKEND
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"
    thumbnail_width: int = 320
    thumbnail_quality: float = 0.8
    log_level: str = "WARNING"
    forensics_dir: str = "logs/forensics"

    @field_validator("thumbnail_width")
    @classmethod
    def positive_width(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("thumbnail_width must be positive")
        return v

    @field_validator("thumbnail_quality")
    @classmethod
    def quality_in_range(cls, v: float) -> float:
        if not 0.0 < v <= 1.0:
            raise ValueError("thumbnail_quality must be in (0, 1]")
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, v: object) -> str:
        return str(v or "WARNING").upper()


_config: Settings | None = None


class ConfigLoader:
    """
    Helper responsible for loading Settings from YAML and environment.

    - load_from_yaml(path, apply_env_override): read a YAML file and optionally apply env overrides.
    - load_default(): resolve the default config path from FLUX_CONFIG / flux_config.yml and
      apply VIDEO_BACKEND override when present.
    """

    def __init__(self, env: Mapping[str, str] | None = None) -> None:
        self._env: Mapping[str, str] = env if env is not None else os.environ

    def load_from_yaml(self, path: Path, apply_env_override: bool) -> Settings:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = yaml.safe_load(f)
        if not data:
            data = {}
        if apply_env_override and self._env.get(BACKEND_ENV_VAR):
            data["video_backend"] = self._env[BACKEND_ENV_VAR]
        return Settings.model_validate(data)

    def load_default(self) -> Settings:
        """
        Load the default Settings, using FLUX_CONFIG or flux_config.yml.

        When no explicit config_path is provided, VIDEO_BACKEND (if set) overrides the YAML value
        or the default.
        """
        path_str = self._env.get(DEFAULT_CONFIG_ENV_VAR) or DEFAULT_CONFIG_FILENAME
        path = Path(path_str)
        if path.exists():
            return self.load_from_yaml(path, apply_env_override=True)

        if self._env.get(BACKEND_ENV_VAR):
            return Settings.model_validate({"video_backend": self._env[BACKEND_ENV_VAR]})
        return Settings()


_loader = ConfigLoader()


def get_config(config_path: str | Path | None = None) -> Settings:
    """
    Return singleton config.

    - If config_path is given, load from it (without env overrides) and update the cache.
    - Otherwise, return the cached config if available, or load via ConfigLoader.load_default().
    """
    global _config
    if config_path is not None:
        _config = _loader.load_from_yaml(Path(config_path), apply_env_override=False)
        return _config
    if _config is not None:
        return _config
    _config = _loader.load_default()
    return _config


def reset_config() -> None:
    """Clear cached config (for tests)."""
    global _config
    _config = None
