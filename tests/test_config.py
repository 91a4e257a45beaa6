"""Tests for Settings loading: YAML, FLUX_CONFIG, VIDEO_BACKEND override, validators."""

import pytest
from pydantic import ValidationError

from src.core.config import ConfigLoader, Settings, get_config, reset_config

pytestmark = [pytest.mark.fast]


def test_defaults_without_config_file():
    cfg = ConfigLoader(env={}).load_default()
    assert cfg.video_backend == "opencv"
    assert cfg.thumbnail_width == 320
    assert cfg.thumbnail_quality == 0.8
    assert cfg.log_level == "WARNING"


def test_load_from_yaml(tmp_path):
    path = tmp_path / "flux.yml"
    path.write_text("video_backend: ffmpeg\nffmpeg_path: /usr/local/bin/ffmpeg\nlog_level: debug\nunknown_key: 1\n")

    cfg = ConfigLoader(env={}).load_from_yaml(path, apply_env_override=False)

    assert cfg.video_backend == "ffmpeg"
    assert cfg.ffmpeg_path == "/usr/local/bin/ffmpeg"
    assert cfg.log_level == "DEBUG"


def test_empty_yaml_gives_defaults(tmp_path):
    path = tmp_path / "flux.yml"
    path.write_text("")
    assert ConfigLoader(env={}).load_from_yaml(path, apply_env_override=True) == Settings()


def test_missing_yaml_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        ConfigLoader(env={}).load_from_yaml(tmp_path / "nope.yml", apply_env_override=False)


def test_flux_config_env_points_at_file(tmp_path):
    path = tmp_path / "custom.yml"
    path.write_text("thumbnail_width: 640\n")
    cfg = ConfigLoader(env={"FLUX_CONFIG": str(path)}).load_default()
    assert cfg.thumbnail_width == 640


def test_video_backend_env_overrides_default_file(tmp_path):
    path = tmp_path / "custom.yml"
    path.write_text("video_backend: opencv\n")
    cfg = ConfigLoader(env={"FLUX_CONFIG": str(path), "VIDEO_BACKEND": "ffmpeg"}).load_default()
    assert cfg.video_backend == "ffmpeg"


def test_video_backend_env_without_file():
    assert ConfigLoader(env={"VIDEO_BACKEND": "ffmpeg"}).load_default().video_backend == "ffmpeg"


def test_explicit_path_ignores_env(tmp_path, monkeypatch):
    path = tmp_path / "explicit.yml"
    path.write_text("video_backend: opencv\n")
    monkeypatch.setenv("VIDEO_BACKEND", "ffmpeg")
    assert get_config(path).video_backend == "opencv"


def test_get_config_is_cached_until_reset(tmp_path, monkeypatch):
    first = get_config()
    assert get_config() is first
    monkeypatch.setenv("VIDEO_BACKEND", "ffmpeg")
    assert get_config().video_backend == "opencv"
    reset_config()
    assert get_config().video_backend == "ffmpeg"


def test_default_file_in_cwd_is_used(tmp_path):
    (tmp_path / "flux_config.yml").write_text("thumbnail_quality: 0.5\n")
    assert get_config().thumbnail_quality == 0.5


@pytest.mark.parametrize(
    "data",
    [
        {"video_backend": "vlc"},
        {"thumbnail_width": 0},
        {"thumbnail_quality": 0.0},
        {"thumbnail_quality": 1.5},
    ],
)
def test_invalid_settings_rejected(data):
    with pytest.raises(ValidationError):
        Settings.model_validate(data)
