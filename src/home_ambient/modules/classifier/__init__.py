"""
State classification.

Scores labeled profiles against each Context, holds the best label, and
emits a Transition when the label changes. The same engine serves context,
mood and activity classification with different profiles and floors.
"""

from .models import (
    RangeIndicator,
    ValuesIndicator,
    MinCountIndicator,
    Indicator,
    parse_indicator,
    Profile,
    profiles_from_dicts,
    TransitionKind,
    Transition,
    ClassifierState,
    Classification,
)
from .engine import StateClassifier
from .profiles import (
    CONTEXT_FLOOR,
    MOOD_FLOOR,
    ACTIVITY_FLOOR,
    context_profiles,
    mood_profiles,
    activity_profiles,
)

__all__ = [
    "RangeIndicator",
    "ValuesIndicator",
    "MinCountIndicator",
    "Indicator",
    "parse_indicator",
    "Profile",
    "profiles_from_dicts",
    "TransitionKind",
    "Transition",
    "ClassifierState",
    "Classification",
    "StateClassifier",
    "CONTEXT_FLOOR",
    "MOOD_FLOOR",
    "ACTIVITY_FLOOR",
    "context_profiles",
    "mood_profiles",
    "activity_profiles",
]
