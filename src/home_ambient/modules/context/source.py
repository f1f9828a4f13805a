"""
Signal source interface for the context sampler.

The host platform provides a concrete implementation that reads presence,
recent device changes, environmental sensors and device aggregates.
MockSignalSource holds settable values for tests and demos.
"""

from abc import ABC, abstractmethod
from datetime import datetime, UTC
from typing import List, Optional

from .models import DeviceAggregate, DeviceChange, Environment, Presence


class SignalSource(ABC):
    """
    Abstract interface for reading raw signals.

    Read methods are async and may raise; the sampler treats a failed read
    as missing data.
    """

    @abstractmethod
    async def get_presence(self) -> Presence:
        """Current presence status and occupant count."""
        pass

    @abstractmethod
    async def get_recent_device_changes(self, since: datetime) -> List[DeviceChange]:
        """
        Device state changes recorded after a point in time.

        Args:
            since: Only changes with a later timestamp are returned
        """
        pass

    @abstractmethod
    async def get_environment(self) -> Environment:
        """Temperature, humidity and light level (each optional)."""
        pass

    @abstractmethod
    async def get_device_aggregate(self) -> DeviceAggregate:
        """Device counts and capability averages."""
        pass

    def get_current_time(self) -> datetime:
        """
        Get current time from platform.

        Returns:
            Current datetime (timezone-aware)
        """
        return datetime.now(UTC)


class MockSignalSource(SignalSource):
    """
    Mock signal source for testing.

    Set values with the set_* helpers. Use fail_reads() to make a read raise.
    """

    def __init__(self) -> None:
        self._presence = Presence()
        self._changes: List[DeviceChange] = []
        self._environment = Environment()
        self._aggregate = DeviceAggregate()
        self._current_time: Optional[datetime] = None
        self._failing: set[str] = set()

    def set_presence(self, presence: Presence) -> None:
        self._presence = presence

    def add_device_change(self, change: DeviceChange) -> None:
        self._changes.append(change)

    def clear_device_changes(self) -> None:
        self._changes.clear()

    def set_environment(self, environment: Environment) -> None:
        self._environment = environment

    def set_device_aggregate(self, aggregate: DeviceAggregate) -> None:
        self._aggregate = aggregate

    def set_current_time(self, dt: datetime) -> None:
        self._current_time = dt

    def fail_reads(self, *names: str) -> None:
        """Make the named reads ("presence", "changes", "environment", "aggregate") raise."""
        self._failing.update(names)

    def _check(self, name: str) -> None:
        if name in self._failing:
            raise ConnectionError(f"{name} unavailable")

    # SignalSource implementation

    async def get_presence(self) -> Presence:
        self._check("presence")
        return self._presence

    async def get_recent_device_changes(self, since: datetime) -> List[DeviceChange]:
        self._check("changes")
        return [c for c in self._changes if c.timestamp > since]

    async def get_environment(self) -> Environment:
        self._check("environment")
        return self._environment

    async def get_device_aggregate(self) -> DeviceAggregate:
        self._check("aggregate")
        return self._aggregate

    def get_current_time(self) -> datetime:
        if self._current_time:
            return self._current_time
        return datetime.now(UTC)
