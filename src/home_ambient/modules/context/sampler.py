"""
Signal sampler - builds one Context snapshot per tick.

Reads are independent: a failing presence, environment or device read
degrades to a default value instead of failing the whole sample.
"""

import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence

from .models import (
    ActivityLevel,
    Context,
    DeviceAggregate,
    DeviceChange,
    Environment,
    Presence,
    PresenceStatus,
)
from .source import SignalSource

logger = logging.getLogger(__name__)


# Keyword -> device category, checked in order
DEVICE_CATEGORIES: List[tuple[str, tuple[str, ...]]] = [
    ("kitchen", ("kitchen", "oven", "stove", "hood")),
    ("entertainment", ("tv", "media", "speaker")),
    ("cleaning", ("vacuum", "clean")),
    ("office", ("office", "desk", "computer")),
    ("bedroom", ("bedroom", "bed")),
]


def activity_score(change_count: int) -> float:
    """Map a recent device-change count to an activity score in [0, 1]."""
    if change_count <= 0:
        return 0.0
    if change_count < 3:
        return 0.2
    if change_count < 10:
        return 0.5
    if change_count < 20:
        return 0.8
    return 1.0


def categorize_device(device_name: str) -> str:
    """Categorize a device by keywords in its name."""
    name = device_name.lower()
    for category, keywords in DEVICE_CATEGORIES:
        if any(keyword in name for keyword in keywords):
            return category
    return "other"


def detect_specific_activity(changes: Sequence[DeviceChange]) -> str:
    """Guess what people are doing from which kinds of devices changed."""
    counts: Dict[str, int] = {}
    for change in changes:
        category = categorize_device(change.device_name)
        counts[category] = counts.get(category, 0) + 1

    if counts.get("kitchen", 0) > 2:
        return "cooking"
    if counts.get("entertainment", 0) > 1:
        return "entertainment"
    if counts.get("cleaning"):
        return "cleaning"
    if counts.get("office", 0) > 2:
        return "working"
    if counts.get("bedroom") and any(
        c.capability == "onoff" and c.value is False and c.room == "bedroom" for c in changes
    ):
        return "sleeping"
    return "general"


class SignalSampler:
    """
    Pulls current readings from a SignalSource into an immutable Context.

    The sampler holds no state between ticks.
    """

    def __init__(self, source: SignalSource, activity_window: float = 300.0) -> None:
        """
        Args:
            source: Where readings come from
            activity_window: Seconds of device changes counted toward activity
        """
        self._source = source
        self._activity_window = timedelta(seconds=activity_window)

    @property
    def source(self) -> SignalSource:
        return self._source

    def now(self) -> datetime:
        return self._source.get_current_time()

    async def sample(self, now: Optional[datetime] = None) -> Context:
        """
        Build a Context for the current moment.

        Args:
            now: Snapshot time (defaults to the source's current time)

        Returns:
            A new immutable Context
        """
        if now is None:
            now = self._source.get_current_time()

        presence = await self._read_presence()
        changes = await self._read_changes(now - self._activity_window)
        environment = await self._read_environment()
        aggregate = await self._read_aggregate()

        rooms = {c.room for c in changes if c.room}
        if rooms:
            aggregate = replace(aggregate, active_rooms=aggregate.active_rooms | rooms)

        ctx = Context(
            timestamp=now,
            presence=presence,
            activity_level=ActivityLevel.from_score(activity_score(len(changes)), len(changes)),
            environment=environment,
            device_aggregate=aggregate,
            specific_activity=detect_specific_activity(changes) if changes else None,
        )
        logger.debug(
            f"Sampled context: {ctx.time_of_day.value}, presence={presence.status.value}, "
            f"activity={ctx.activity_level.band.value}"
        )
        return ctx

    async def _read_presence(self) -> Presence:
        try:
            return await self._source.get_presence()
        except Exception as e:
            logger.warning(f"Presence unavailable: {e}")
            return Presence(status=PresenceStatus.UNKNOWN, confidence=0.0)

    async def _read_changes(self, since: datetime) -> List[DeviceChange]:
        try:
            return list(await self._source.get_recent_device_changes(since))
        except Exception as e:
            logger.warning(f"Device change history unavailable: {e}")
            return []

    async def _read_environment(self) -> Environment:
        try:
            return await self._source.get_environment()
        except Exception as e:
            logger.warning(f"Environment sensors unavailable: {e}")
            return Environment()

    async def _read_aggregate(self) -> DeviceAggregate:
        try:
            return await self._source.get_device_aggregate()
        except Exception as e:
            logger.warning(f"Device aggregate unavailable: {e}")
            return DeviceAggregate()
