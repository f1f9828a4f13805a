"""
Capability provider interfaces for the action dispatcher.

Providers are the bridge between the engine and the host platform (device
I/O, scenes, notification delivery, climate control). The integration layer
supplies concrete implementations; the Mock variants record calls for tests
and demos.

All provider methods are async and may fail. The dispatcher never assumes
success: a raise, a timeout or a False return all count as a failed action.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple


class DeviceController(ABC):
    """Reads and writes device capabilities (onoff, dim, alarm_armed, ...)."""

    @abstractmethod
    async def get(self, device_id: str, capability: str) -> Any:
        """
        Read a capability value.

        Returns:
            Current value, or None if the device/capability is unknown
        """
        pass

    @abstractmethod
    async def set(self, device_id: str, capability: str, value: Any) -> bool:
        """
        Write a capability value.

        Returns:
            True if the write succeeded, False otherwise
        """
        pass


class SceneActivator(ABC):
    """Activates named scenes."""

    @abstractmethod
    async def activate(self, scene_id: str) -> bool:
        pass


class Notifier(ABC):
    """Delivers notifications to the household."""

    @abstractmethod
    async def send(
        self, title: str, body: str, metadata: Optional[Dict[str, Any]] = None
    ) -> bool:
        pass


class ClimateController(ABC):
    """Sets HVAC mode and target temperature."""

    @abstractmethod
    async def set_mode(self, mode: str) -> bool:
        pass

    @abstractmethod
    async def set_target(self, temperature: float) -> bool:
        pass


# =============================================================================
# Mock providers
# =============================================================================


class _MockBehavior:
    """
    Shared failure switches for mock providers.

    - fail_with: raise this exception on every call
    - return_false: return False instead of True
    - hang: sleep forever (to exercise dispatcher timeouts)
    """

    def __init__(self) -> None:
        self.fail_with: Optional[BaseException] = None
        self.return_false = False
        self.hang = False

    def reset(self) -> None:
        self.fail_with = None
        self.return_false = False
        self.hang = False

    async def _respond(self) -> bool:
        if self.hang:
            await asyncio.Event().wait()
        if self.fail_with is not None:
            raise self.fail_with
        return not self.return_false


class MockDeviceController(_MockBehavior, DeviceController):
    """
    Mock device controller for testing.

    Stores written values and records every set() call.
    """

    def __init__(self) -> None:
        super().__init__()
        self._values: Dict[Tuple[str, str], Any] = {}
        self.calls: List[Tuple[str, str, Any]] = []

    def set_value(self, device_id: str, capability: str, value: Any) -> None:
        """Seed a capability value for testing."""
        self._values[(device_id, capability)] = value

    async def get(self, device_id: str, capability: str) -> Any:
        return self._values.get((device_id, capability))

    async def set(self, device_id: str, capability: str, value: Any) -> bool:
        self.calls.append((device_id, capability, value))
        ok = await self._respond()
        if ok:
            self._values[(device_id, capability)] = value
        return ok


class MockSceneActivator(_MockBehavior, SceneActivator):
    """Mock scene activator; records activated scene ids."""

    def __init__(self) -> None:
        super().__init__()
        self.calls: List[str] = []

    async def activate(self, scene_id: str) -> bool:
        self.calls.append(scene_id)
        return await self._respond()


class MockNotifier(_MockBehavior, Notifier):
    """Mock notifier; records (title, body, metadata) for every send."""

    def __init__(self) -> None:
        super().__init__()
        self.calls: List[Tuple[str, str, Dict[str, Any]]] = []

    async def send(
        self, title: str, body: str, metadata: Optional[Dict[str, Any]] = None
    ) -> bool:
        self.calls.append((title, body, dict(metadata or {})))
        return await self._respond()

    @property
    def bodies(self) -> List[str]:
        return [body for _, body, _ in self.calls]


class MockClimateController(_MockBehavior, ClimateController):
    """Mock climate controller; records ("mode", x) and ("target", t) calls."""

    def __init__(self) -> None:
        super().__init__()
        self.calls: List[Tuple[str, Any]] = []
        self.mode: Optional[str] = None
        self.target: Optional[float] = None

    async def set_mode(self, mode: str) -> bool:
        self.calls.append(("mode", mode))
        ok = await self._respond()
        if ok:
            self.mode = mode
        return ok

    async def set_target(self, temperature: float) -> bool:
        self.calls.append(("target", temperature))
        ok = await self._respond()
        if ok:
            self.target = temperature
        return ok
