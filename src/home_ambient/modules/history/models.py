"""
Data models for history and pattern mining.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict


@dataclass(frozen=True)
class LabelSample:
    """The classifier label held at one sampling tick."""

    label: str
    time_bucket: str  # TimeOfDay value
    confidence: float
    timestamp: datetime


@dataclass(frozen=True)
class BehaviorPattern:
    """
    A mined (label, time bucket) regularity.

    Informational only: a pattern never becomes an active rule without an
    explicit promotion step.
    """

    label: str
    time_bucket: str
    frequency: int  # Samples with this label in this bucket
    sample_size: int  # Total samples mined
    discovered_at: datetime

    @property
    def id(self) -> str:
        return f"{self.label}@{self.time_bucket}"

    @property
    def confidence(self) -> float:
        if self.sample_size <= 0:
            return 0.0
        return self.frequency / self.sample_size

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict."""
        return {
            "id": self.id,
            "label": self.label,
            "time_bucket": self.time_bucket,
            "frequency": self.frequency,
            "sample_size": self.sample_size,
            "confidence": self.confidence,
            "discovered_at": self.discovered_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BehaviorPattern":
        """Deserialize from dict."""
        return cls(
            label=data["label"],
            time_bucket=data["time_bucket"],
            frequency=data["frequency"],
            sample_size=data["sample_size"],
            discovered_at=datetime.fromisoformat(data["discovered_at"]),
        )
