"""
Default profile sets.

Three sets share the same scoring engine and differ only in profiles and
floor: household context (floor 0.5), mood (0.6) and activity (0.6).
Day-of-week indicators use Monday = 0.
"""

from typing import List

from .models import MinCountIndicator, Profile, RangeIndicator, ValuesIndicator

CONTEXT_FLOOR = 0.5
MOOD_FLOOR = 0.6
ACTIVITY_FLOOR = 0.6

WEEKDAYS = frozenset({0, 1, 2, 3, 4})
WEEKEND = frozenset({5, 6})

# Context field paths used by the default profiles
ACTIVITY_SCORE = "activity_level.score"
ACTIVITY_BAND = "activity_level.band"
LIGHTING = "device_aggregate.averages.dim"
VOLUME = "device_aggregate.averages.volume_set"
ROOMS = "device_aggregate.active_rooms"
TIME_OF_DAY = "time_of_day"
WEEKDAY = "weekday"
PRESENCE = "presence.status"
OCCUPANTS = "presence.occupant_count"


def context_profiles() -> List[Profile]:
    """Household context: where people are and how busy the home is."""
    return [
        Profile(
            id="away",
            label="away",
            name="Away",
            description="Nobody home, nothing happening",
            indicators=(
                ValuesIndicator(PRESENCE, frozenset({"away"})),
                ValuesIndicator(ACTIVITY_BAND, frozenset({"idle"})),
            ),
        ),
        Profile(
            id="sleeping",
            label="sleeping",
            name="Sleeping",
            description="Home at night with no activity",
            indicators=(
                ValuesIndicator(PRESENCE, frozenset({"home"})),
                ValuesIndicator(TIME_OF_DAY, frozenset({"night", "late_evening"})),
                ValuesIndicator(ACTIVITY_BAND, frozenset({"idle"})),
            ),
        ),
        Profile(
            id="morning_routine",
            label="morning_routine",
            name="Morning Routine",
            indicators=(
                ValuesIndicator(PRESENCE, frozenset({"home"})),
                ValuesIndicator(TIME_OF_DAY, frozenset({"early_morning", "morning"})),
                ValuesIndicator(ACTIVITY_BAND, frozenset({"light", "moderate", "active"})),
            ),
        ),
        Profile(
            id="evening_leisure",
            label="evening_leisure",
            name="Evening Leisure",
            indicators=(
                ValuesIndicator(PRESENCE, frozenset({"home"})),
                ValuesIndicator(TIME_OF_DAY, frozenset({"evening", "late_evening"})),
                ValuesIndicator(ACTIVITY_BAND, frozenset({"light", "moderate"})),
            ),
        ),
        Profile(
            id="busy",
            label="busy",
            name="Busy",
            description="People home and lots of device activity",
            indicators=(
                ValuesIndicator(PRESENCE, frozenset({"home"})),
                ValuesIndicator(ACTIVITY_BAND, frozenset({"moderate", "active"})),
                MinCountIndicator(OCCUPANTS, 1),
            ),
        ),
    ]


def mood_profiles() -> List[Profile]:
    """Mood detection profiles."""
    return [
        Profile(
            id="energetic",
            label="energetic",
            name="Energetic",
            description="High energy, active mood",
            indicators=(
                RangeIndicator(ACTIVITY_SCORE, 0.7, 1.0),
                RangeIndicator(LIGHTING, 0.7, 1.0),
                RangeIndicator(VOLUME, 0.6, 1.0),
                ValuesIndicator(TIME_OF_DAY, frozenset({"morning", "afternoon"})),
                ValuesIndicator(WEEKDAY, WEEKDAYS),
            ),
        ),
        Profile(
            id="relaxed",
            label="relaxed",
            name="Relaxed",
            description="Calm, peaceful mood",
            indicators=(
                RangeIndicator(ACTIVITY_SCORE, 0.2, 0.5),
                RangeIndicator(LIGHTING, 0.3, 0.6),
                RangeIndicator(VOLUME, 0.2, 0.5),
                ValuesIndicator(TIME_OF_DAY, frozenset({"evening", "late_evening"})),
                ValuesIndicator(WEEKDAY, WEEKEND),
            ),
        ),
        Profile(
            id="focused",
            label="focused",
            name="Focused",
            description="Concentrated, working mood",
            indicators=(
                RangeIndicator(ACTIVITY_SCORE, 0.4, 0.7),
                RangeIndicator(LIGHTING, 0.6, 0.9),
                RangeIndicator(VOLUME, 0.1, 0.4),
                ValuesIndicator(TIME_OF_DAY, frozenset({"morning", "afternoon"})),
                ValuesIndicator(ROOMS, frozenset({"office", "study"})),
            ),
        ),
        Profile(
            id="social",
            label="social",
            name="Social",
            description="Entertaining, social mood",
            indicators=(
                RangeIndicator(ACTIVITY_SCORE, 0.6, 1.0),
                RangeIndicator(LIGHTING, 0.5, 0.8),
                RangeIndicator(VOLUME, 0.5, 0.9),
                ValuesIndicator(TIME_OF_DAY, frozenset({"evening", "late_evening"})),
                MinCountIndicator(OCCUPANTS, 2),
            ),
        ),
        Profile(
            id="sleepy",
            label="sleepy",
            name="Sleepy",
            description="Tired, ready for rest",
            indicators=(
                RangeIndicator(ACTIVITY_SCORE, 0.0, 0.2),
                RangeIndicator(LIGHTING, 0.0, 0.3),
                RangeIndicator(VOLUME, 0.0, 0.2),
                ValuesIndicator(TIME_OF_DAY, frozenset({"late_evening", "night"})),
                ValuesIndicator(ROOMS, frozenset({"bedroom"})),
            ),
        ),
    ]


def activity_profiles() -> List[Profile]:
    """Activity detection profiles."""
    return [
        Profile(
            id="sleeping",
            label="sleeping",
            name="Sleeping",
            indicators=(
                ValuesIndicator(TIME_OF_DAY, frozenset({"night", "early_morning"})),
                RangeIndicator(ACTIVITY_SCORE, maximum=0.1),
                ValuesIndicator(ROOMS, frozenset({"bedroom"})),
            ),
        ),
        Profile(
            id="working",
            label="working",
            name="Working",
            indicators=(
                ValuesIndicator(TIME_OF_DAY, frozenset({"morning", "afternoon"})),
                ValuesIndicator(ROOMS, frozenset({"office", "study"})),
                RangeIndicator(ACTIVITY_SCORE, 0.4, 0.8),
                ValuesIndicator(WEEKDAY, WEEKDAYS),
            ),
        ),
        Profile(
            id="cooking",
            label="cooking",
            name="Cooking",
            indicators=(
                ValuesIndicator(ROOMS, frozenset({"kitchen"})),
                RangeIndicator(ACTIVITY_SCORE, minimum=0.5),
                ValuesIndicator("specific_activity", frozenset({"cooking"})),
            ),
        ),
        Profile(
            id="entertaining",
            label="entertaining",
            name="Entertaining",
            indicators=(
                MinCountIndicator(OCCUPANTS, 2),
                RangeIndicator(ACTIVITY_SCORE, minimum=0.6),
                ValuesIndicator(ROOMS, frozenset({"living_room", "dining_room"})),
                ValuesIndicator(TIME_OF_DAY, frozenset({"evening", "late_evening"})),
            ),
        ),
        Profile(
            id="relaxing",
            label="relaxing",
            name="Relaxing",
            indicators=(
                RangeIndicator(ACTIVITY_SCORE, 0.2, 0.5),
                ValuesIndicator(ROOMS, frozenset({"living_room", "bedroom"})),
                RangeIndicator(LIGHTING, 0.3, 0.6),
                ValuesIndicator(TIME_OF_DAY, frozenset({"evening", "late_evening"})),
            ),
        ),
        Profile(
            id="away",
            label="away",
            name="Away",
            indicators=(
                ValuesIndicator(PRESENCE, frozenset({"away"})),
                RangeIndicator(ACTIVITY_SCORE, maximum=0.1),
            ),
        ),
    ]
