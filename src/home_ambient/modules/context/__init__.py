"""
Context sampling.

Turns raw signals (presence, device changes, environmental sensors) into
immutable Context snapshots used by the classifier and the rule engine.
"""

from .models import (
    TimeOfDay,
    PresenceStatus,
    ActivityBand,
    Presence,
    ActivityLevel,
    Environment,
    DeviceAggregate,
    DeviceChange,
    Context,
    resolve_field,
)
from .source import SignalSource, MockSignalSource
from .sampler import SignalSampler, activity_score, categorize_device, detect_specific_activity

__all__ = [
    "TimeOfDay",
    "PresenceStatus",
    "ActivityBand",
    "Presence",
    "ActivityLevel",
    "Environment",
    "DeviceAggregate",
    "DeviceChange",
    "Context",
    "resolve_field",
    "SignalSource",
    "MockSignalSource",
    "SignalSampler",
    "activity_score",
    "categorize_device",
    "detect_specific_activity",
]
