"""
Data models for the state classifier.

Defines profiles and their indicators, the classifier's held state, and
the transitions it emits.
"""

from collections.abc import Collection
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

from home_ambient.modules.context import Context, resolve_field


# =============================================================================
# Indicators
# =============================================================================


@dataclass(frozen=True)
class RangeIndicator:
    """Numeric field within [minimum, maximum]. Either bound may be omitted."""

    field: str  # e.g., "activity_level.score"
    minimum: Optional[float] = None
    maximum: Optional[float] = None

    def matches(self, ctx: Context) -> bool:
        value = resolve_field(ctx, self.field)
        if not isinstance(value, (int, float)) or isinstance(value, bool):
            return False
        if self.minimum is not None and value < self.minimum:
            return False
        if self.maximum is not None and value > self.maximum:
            return False
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "range", "field": self.field, "min": self.minimum, "max": self.maximum}


@dataclass(frozen=True)
class ValuesIndicator:
    """
    Field value is one of an allowed set.

    When the field is itself a collection (e.g., active rooms), any member
    in the allowed set satisfies the indicator.
    """

    field: str  # e.g., "time_of_day"
    values: FrozenSet[Any]

    def matches(self, ctx: Context) -> bool:
        value = resolve_field(ctx, self.field)
        if value is None:
            return False
        if isinstance(value, Collection) and not isinstance(value, str):
            return any(v in self.values for v in value)
        return value in self.values

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "values", "field": self.field, "values": sorted(self.values, key=str)}


@dataclass(frozen=True)
class MinCountIndicator:
    """Count field is at least a minimum (e.g., presence.occupant_count >= 2)."""

    field: str
    minimum: int

    def matches(self, ctx: Context) -> bool:
        value = resolve_field(ctx, self.field)
        if not isinstance(value, (int, float)) or isinstance(value, bool):
            return False
        return value >= self.minimum

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "min_count", "field": self.field, "min": self.minimum}


Indicator = RangeIndicator | ValuesIndicator | MinCountIndicator


def parse_indicator(data: Dict[str, Any]) -> Indicator:
    """Parse indicator config from dict."""
    indicator_type = data.get("type")

    if indicator_type == "range":
        return RangeIndicator(field=data["field"], minimum=data.get("min"), maximum=data.get("max"))
    elif indicator_type == "values":
        return ValuesIndicator(field=data["field"], values=frozenset(data["values"]))
    elif indicator_type == "min_count":
        return MinCountIndicator(field=data["field"], minimum=data["min"])
    else:
        raise ValueError(f"Unknown indicator type: {indicator_type}")


# =============================================================================
# Profile
# =============================================================================


@dataclass(frozen=True)
class Profile:
    """
    A labeled set of indicators.

    Score = satisfied indicators / declared indicators. Only declared
    indicators count, so a profile with few indicators is not penalized.
    """

    id: str
    label: str
    name: str
    indicators: tuple[Indicator, ...] = ()
    description: str = ""

    def score(self, ctx: Context) -> float:
        """Fraction of indicators satisfied by ctx, in [0, 1]."""
        if not self.indicators:
            return 0.0
        satisfied = sum(1 for indicator in self.indicators if indicator.matches(ctx))
        return satisfied / len(self.indicators)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "name": self.name,
            "description": self.description,
            "indicators": [i.to_dict() for i in self.indicators],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Profile":
        return cls(
            id=data["id"],
            label=data.get("label", data["id"]),
            name=data.get("name", data["id"]),
            description=data.get("description", ""),
            indicators=tuple(parse_indicator(i) for i in data.get("indicators", [])),
        )


# =============================================================================
# State and Transitions
# =============================================================================


class TransitionKind(Enum):
    """Which change drove a label transition. Checked in declaration order."""

    PRESENCE_CHANGE = "presence_change"
    ACTIVITY_CHANGE = "activity_change"
    TIME_CHANGE = "time_change"  # Time-of-day bucket changed
    LABEL_CHANGE = "label_change"  # Nothing coarser changed


@dataclass(frozen=True)
class Transition:
    """An actual change of the classifier's label."""

    from_label: Optional[str]
    to_label: str
    kind: TransitionKind
    confidence: float
    timestamp: datetime
    classifier: str = "context"  # Name of the classifier that changed label

    def to_payload(self) -> Dict[str, Any]:
        """Trigger payload for the rule engine."""
        return {
            "classifier": self.classifier,
            "from_label": self.from_label,
            "to_label": self.to_label,
            "kind": self.kind.value,
            "confidence": self.confidence,
        }


@dataclass
class ClassifierState:
    """Label currently held by a classifier."""

    current_label: Optional[str] = None
    confidence: float = 0.0
    last_evaluated_at: Optional[datetime] = None
    last_context: Optional[Context] = field(default=None, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current_label": self.current_label,
            "confidence": self.confidence,
            "last_evaluated_at": (
                self.last_evaluated_at.isoformat() if self.last_evaluated_at else None
            ),
        }


@dataclass(frozen=True)
class Classification:
    """
    Result of one classifier evaluation.

    label is None when no profile cleared the floor. skipped_reason is set
    when there was nothing to classify; that is a neutral result, not an error.
    """

    label: Optional[str]
    confidence: float
    profile_id: Optional[str] = None
    transition: Optional[Transition] = None
    scores: Dict[str, float] = field(default_factory=dict)
    skipped_reason: Optional[str] = None

    @property
    def matched(self) -> bool:
        return self.label is not None

    @property
    def skipped(self) -> bool:
        return self.skipped_reason is not None

    @classmethod
    def skip(cls, reason: str) -> "Classification":
        return cls(label=None, confidence=0.0, skipped_reason=reason)


def profiles_from_dicts(data: List[Dict[str, Any]]) -> List[Profile]:
    """Parse a profile list (e.g., loaded from settings)."""
    return [Profile.from_dict(p) for p in data]
