"""
Settings store interface (persistence boundary).

Rules and learned patterns are written through this interface as plain
maps keyed by id. The host platform provides the durable implementation;
InMemorySettingsStore is used for tests and demos.
"""

import copy
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class SettingsStore(ABC):
    """Abstract key/value settings API."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """
        Read a value.

        Args:
            key: Settings key (e.g., "ambient_rules")

        Returns:
            The stored value, or None if the key is unset
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """
        Write a value.

        Args:
            key: Settings key
            value: JSON-compatible value (dicts, lists, strings, numbers)
        """
        pass


class InMemorySettingsStore(SettingsStore):
    """Settings store backed by a dict. Values are deep-copied on the way in and out."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None) -> None:
        self._data: Dict[str, Any] = copy.deepcopy(initial) if initial else {}
        self.write_count = 0

    async def get(self, key: str) -> Optional[Any]:
        value = self._data.get(key)
        return copy.deepcopy(value)

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)
        self.write_count += 1

    def snapshot(self) -> Dict[str, Any]:
        """Get a copy of everything stored (for testing)."""
        return copy.deepcopy(self._data)
