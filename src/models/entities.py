"""Value types for scene detection: sensitivity presets, options, scene records, run state."""

import math
from dataclasses import dataclass
from enum import Enum


# --- Enums ---


class Sensitivity(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


class DetectionState(str, Enum):
    """Scene segmenter lifecycle. failed is reachable from any state."""

    uninitialized = "uninitialized"
    metadata_loaded = "metadata_loaded"
    sampling = "sampling"
    complete = "complete"
    failed = "failed"


# --- Value objects ---


@dataclass(frozen=True)
class SensitivityPreset:
    """Difference threshold (percent, 0-100) plus seconds between samples."""

    threshold: float
    sample_interval: float

    def __post_init__(self) -> None:
        if not 0.0 <= self.threshold <= 100.0:
            raise ValueError(f"threshold must be within [0, 100], got {self.threshold}")
        if not (self.sample_interval > 0 and math.isfinite(self.sample_interval)):
            raise ValueError(f"sample_interval must be positive, got {self.sample_interval}")


SENSITIVITY_PRESETS: dict[Sensitivity, SensitivityPreset] = {
    Sensitivity.high: SensitivityPreset(threshold=8.0, sample_interval=0.3),
    Sensitivity.medium: SensitivityPreset(threshold=15.0, sample_interval=0.5),
    Sensitivity.low: SensitivityPreset(threshold=25.0, sample_interval=1.0),
}


@dataclass(frozen=True)
class DetectionOptions:
    sensitivity: Sensitivity = Sensitivity.medium

    def __post_init__(self) -> None:
        # Accept plain strings ("low" | "medium" | "high") from callers and the CLI.
        object.__setattr__(self, "sensitivity", Sensitivity(self.sensitivity))

    @property
    def preset(self) -> SensitivityPreset:
        return SENSITIVITY_PRESETS[self.sensitivity]


@dataclass(frozen=True)
class SceneChange:
    """One detected scene boundary. Emitted in strictly increasing timestamp order."""

    id: str
    timestamp: float
    thumbnail_url: str
    confidence: int

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "thumbnailUrl": self.thumbnail_url,
            "confidence": self.confidence,
        }
