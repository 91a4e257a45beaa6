"""Tests for scene detection value types."""

import pytest

from src.models.entities import DetectionOptions, SceneChange, Sensitivity

pytestmark = [pytest.mark.fast]


def test_scene_change_to_dict_uses_camel_case_thumbnail_key():
    scene = SceneChange(id="3", timestamp=12.5, thumbnail_url="data:image/jpeg;base64,AAAA", confidence=77)
    assert scene.to_dict() == {
        "id": "3",
        "timestamp": 12.5,
        "thumbnailUrl": "data:image/jpeg;base64,AAAA",
        "confidence": 77,
    }


def test_scene_change_is_immutable():
    scene = SceneChange(id="0", timestamp=0.0, thumbnail_url="", confidence=100)
    with pytest.raises(AttributeError):
        scene.confidence = 5  # type: ignore[misc]


def test_detection_options_default_is_medium():
    assert DetectionOptions().sensitivity is Sensitivity.medium


def test_sensitivity_values_are_strings():
    assert [s.value for s in Sensitivity] == ["low", "medium", "high"]
    assert Sensitivity("high") is Sensitivity.high
