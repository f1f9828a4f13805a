"""
Data models for context sampling.

A Context is one immutable snapshot of presence, activity, environment and
device signals. All classes here are frozen.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Mapping, Optional


# =============================================================================
# Enums
# =============================================================================


class TimeOfDay(Enum):
    """Time-of-day buckets, in day order."""

    EARLY_MORNING = "early_morning"  # 05:00 - 07:59
    MORNING = "morning"  # 08:00 - 11:59
    AFTERNOON = "afternoon"  # 12:00 - 16:59
    EVENING = "evening"  # 17:00 - 20:59
    LATE_EVENING = "late_evening"  # 21:00 - 22:59
    NIGHT = "night"  # 23:00 - 04:59

    @classmethod
    def from_hour(cls, hour: int) -> "TimeOfDay":
        """Bucket an hour of day (0-23)."""
        if 5 <= hour < 8:
            return cls.EARLY_MORNING
        if 8 <= hour < 12:
            return cls.MORNING
        if 12 <= hour < 17:
            return cls.AFTERNOON
        if 17 <= hour < 21:
            return cls.EVENING
        if 21 <= hour < 23:
            return cls.LATE_EVENING
        return cls.NIGHT

    @property
    def hours(self) -> tuple[int, int]:
        """Inclusive (start, end) hours of this bucket. NIGHT wraps past midnight."""
        return _BUCKET_HOURS[self]


_BUCKET_HOURS = {
    TimeOfDay.EARLY_MORNING: (5, 7),
    TimeOfDay.MORNING: (8, 11),
    TimeOfDay.AFTERNOON: (12, 16),
    TimeOfDay.EVENING: (17, 20),
    TimeOfDay.LATE_EVENING: (21, 22),
    TimeOfDay.NIGHT: (23, 4),
}


class PresenceStatus(Enum):
    HOME = "home"
    AWAY = "away"
    UNKNOWN = "unknown"


class ActivityBand(Enum):
    """Coarse activity level derived from the activity score."""

    IDLE = "idle"
    LIGHT = "light"
    MODERATE = "moderate"
    ACTIVE = "active"

    @classmethod
    def from_score(cls, score: float) -> "ActivityBand":
        if score > 0.7:
            return cls.ACTIVE
        if score > 0.3:
            return cls.MODERATE
        if score > 0.1:
            return cls.LIGHT
        return cls.IDLE


# =============================================================================
# Signal Readings
# =============================================================================


@dataclass(frozen=True)
class Presence:
    """Who is home."""

    status: PresenceStatus = PresenceStatus.UNKNOWN
    occupant_count: int = 0
    confidence: float = 0.0  # 0.0 - 1.0

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Presence confidence must be within [0, 1], got {self.confidence}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "occupant_count": self.occupant_count,
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class ActivityLevel:
    """How busy the home is, from recent device changes."""

    band: ActivityBand = ActivityBand.IDLE
    score: float = 0.0  # 0.0 - 1.0
    recent_changes: int = 0

    @classmethod
    def from_score(cls, score: float, recent_changes: int = 0) -> "ActivityLevel":
        return cls(band=ActivityBand.from_score(score), score=score, recent_changes=recent_changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "band": self.band.value,
            "score": self.score,
            "recent_changes": self.recent_changes,
        }


@dataclass(frozen=True)
class Environment:
    """Environmental sensor readings. Any value may be unavailable."""

    temperature: Optional[float] = None
    humidity: Optional[float] = None
    light_level: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "temperature": self.temperature,
            "humidity": self.humidity,
            "light_level": self.light_level,
        }


@dataclass(frozen=True)
class DeviceAggregate:
    """
    Aggregate over all devices.

    Attributes:
        total: Number of devices
        active: Devices currently switched on
        averages: Capability -> average value across devices that have it
            (e.g., {"dim": 0.6, "volume_set": 0.3})
        active_rooms: Rooms with recent device activity
    """

    total: int = 0
    active: int = 0
    averages: Mapping[str, float] = field(default_factory=dict)
    active_rooms: FrozenSet[str] = frozenset()

    def __post_init__(self) -> None:
        # Read-only view so the snapshot stays immutable
        object.__setattr__(self, "averages", MappingProxyType(dict(self.averages)))
        object.__setattr__(self, "active_rooms", frozenset(self.active_rooms))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "active": self.active,
            "averages": dict(self.averages),
            "active_rooms": sorted(self.active_rooms),
        }


@dataclass(frozen=True)
class DeviceChange:
    """One recorded device state change (input to activity detection)."""

    device_name: str
    timestamp: datetime
    room: Optional[str] = None
    capability: Optional[str] = None
    value: Any = None


# =============================================================================
# Context
# =============================================================================


@dataclass(frozen=True)
class Context:
    """
    One immutable snapshot of the home at a point in time.

    Created once per sampling tick, then handed by reference to the
    classifier and the rule engine for that tick.
    """

    timestamp: datetime
    presence: Presence = field(default_factory=Presence)
    activity_level: ActivityLevel = field(default_factory=ActivityLevel)
    environment: Environment = field(default_factory=Environment)
    device_aggregate: DeviceAggregate = field(default_factory=DeviceAggregate)
    specific_activity: Optional[str] = None

    @property
    def hour(self) -> int:
        return self.timestamp.hour

    @property
    def time_of_day(self) -> TimeOfDay:
        return TimeOfDay.from_hour(self.timestamp.hour)

    @property
    def weekday(self) -> int:
        """Day of week, Monday = 0."""
        return self.timestamp.weekday()

    @property
    def is_weekend(self) -> bool:
        return self.weekday >= 5

    @property
    def is_away_or_inactive(self) -> bool:
        return (
            self.presence.status == PresenceStatus.AWAY
            or self.activity_level.band == ActivityBand.IDLE
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict (for trigger snapshots and diagnostics)."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "hour": self.hour,
            "time_of_day": self.time_of_day.value,
            "weekday": self.weekday,
            "is_weekend": self.is_weekend,
            "presence": self.presence.to_dict(),
            "activity_level": self.activity_level.to_dict(),
            "environment": self.environment.to_dict(),
            "device_aggregate": self.device_aggregate.to_dict(),
            "specific_activity": self.specific_activity,
        }


_MISSING = object()


def resolve_field(ctx: Context, path: str) -> Optional[Any]:
    """
    Resolve a dotted field path against a Context.

    Enum values are unwrapped to their string value. Missing attributes or
    keys resolve to None instead of raising.

    Examples:
        resolve_field(ctx, "presence.occupant_count")
        resolve_field(ctx, "device_aggregate.averages.dim")
        resolve_field(ctx, "time_of_day")  # -> "evening"
    """
    value: Any = ctx
    for part in path.split("."):
        if value is None:
            return None
        if isinstance(value, Mapping):
            value = value.get(part)
        else:
            value = getattr(value, part, _MISSING)
            if value is _MISSING:
                return None
    if isinstance(value, Enum):
        return value.value
    return value
