"""
Core components of the home-ambient engine.

This package contains:
- errors: Error taxonomy
- config: EngineConfig
- bus: Event Bus implementation
- scheduler: Single-flight periodic Ticker
- settings: Key/value persistence boundary
- engine: AmbientEngine, which wires the modules together
"""

from home_ambient.core.errors import AmbientError, InvalidTrigger, InvalidRule, ProviderError
from home_ambient.core.config import EngineConfig
from home_ambient.core.bus import Event, EventBus, EventFilter
from home_ambient.core.scheduler import Ticker
from home_ambient.core.settings import SettingsStore, InMemorySettingsStore
from home_ambient.core.engine import AmbientEngine

__all__ = [
    "AmbientError",
    "InvalidTrigger",
    "InvalidRule",
    "ProviderError",
    "EngineConfig",
    "Event",
    "EventBus",
    "EventFilter",
    "Ticker",
    "SettingsStore",
    "InMemorySettingsStore",
    "AmbientEngine",
]
