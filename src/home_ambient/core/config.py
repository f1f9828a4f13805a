"""
Engine configuration.

Timer cadences, buffer capacities, the classification floors and the
per-action provider timeout.
"""

from dataclasses import dataclass
from typing import Any, Dict


@dataclass
class EngineConfig:
    """Configuration for one AmbientEngine instance."""

    version: int = 1
    classification_floor: float = 0.5  # Best score must exceed this (context)
    mood_floor: float = 0.6
    activity_floor: float = 0.6
    sample_interval: float = 30.0  # Seconds between sample+classify ticks
    rule_interval: float = 1800.0  # Seconds between conditions-only passes
    mining_interval: float = 3600.0  # Seconds between pattern mining passes
    history_capacity: int = 100  # Per-buffer FIFO capacity
    pattern_capacity: int = 100
    min_pattern_samples: int = 20
    min_pattern_confidence: float = 0.0
    action_timeout: float = 10.0  # Seconds per provider call
    activity_window: float = 300.0  # Seconds of device changes counted as activity
    home_zone: str = "home"  # Zone used for classifier transition triggers
    seed_presets: bool = True

    def __post_init__(self) -> None:
        for name in ("classification_floor", "mood_floor", "activity_floor"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within [0, 1], got {value}")
        for name in (
            "sample_interval",
            "rule_interval",
            "mining_interval",
            "action_timeout",
            "activity_window",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        for name in ("history_capacity", "pattern_capacity", "min_pattern_samples"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be at least 1")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict."""
        return {
            "version": self.version,
            "classification_floor": self.classification_floor,
            "mood_floor": self.mood_floor,
            "activity_floor": self.activity_floor,
            "sample_interval": self.sample_interval,
            "rule_interval": self.rule_interval,
            "mining_interval": self.mining_interval,
            "history_capacity": self.history_capacity,
            "pattern_capacity": self.pattern_capacity,
            "min_pattern_samples": self.min_pattern_samples,
            "min_pattern_confidence": self.min_pattern_confidence,
            "action_timeout": self.action_timeout,
            "activity_window": self.activity_window,
            "home_zone": self.home_zone,
            "seed_presets": self.seed_presets,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EngineConfig":
        """Deserialize from dict, falling back to defaults for missing keys."""
        defaults = cls()
        return cls(
            version=data.get("version", defaults.version),
            classification_floor=data.get("classification_floor", defaults.classification_floor),
            mood_floor=data.get("mood_floor", defaults.mood_floor),
            activity_floor=data.get("activity_floor", defaults.activity_floor),
            sample_interval=data.get("sample_interval", defaults.sample_interval),
            rule_interval=data.get("rule_interval", defaults.rule_interval),
            mining_interval=data.get("mining_interval", defaults.mining_interval),
            history_capacity=data.get("history_capacity", defaults.history_capacity),
            pattern_capacity=data.get("pattern_capacity", defaults.pattern_capacity),
            min_pattern_samples=data.get("min_pattern_samples", defaults.min_pattern_samples),
            min_pattern_confidence=data.get(
                "min_pattern_confidence", defaults.min_pattern_confidence
            ),
            action_timeout=data.get("action_timeout", defaults.action_timeout),
            activity_window=data.get("activity_window", defaults.activity_window),
            home_zone=data.get("home_zone", defaults.home_zone),
            seed_presets=data.get("seed_presets", defaults.seed_presets),
        )
