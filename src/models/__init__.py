"""Value types shared by the video tools."""

from src.models.entities import (
    SENSITIVITY_PRESETS,
    DetectionOptions,
    DetectionState,
    SceneChange,
    Sensitivity,
    SensitivityPreset,
)

__all__ = [
    "SENSITIVITY_PRESETS",
    "DetectionOptions",
    "DetectionState",
    "SceneChange",
    "Sensitivity",
    "SensitivityPreset",
]
