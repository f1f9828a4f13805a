"""
home-ambient: signal classification and rule-driven home automation.

This library provides:
- Context sampling from presence, device and sensor signals
- Profile-based state classification with transition detection
- Trigger/condition/action rules with cooldowns and wildcard zones
- Fault-isolated action dispatch to capability providers
- Bounded history and behavior pattern mining
"""

from home_ambient.core.bus import Event, EventBus, EventFilter
from home_ambient.core.config import EngineConfig
from home_ambient.core.engine import AmbientEngine
from home_ambient.core.errors import AmbientError, InvalidRule, InvalidTrigger, ProviderError

__version__ = "0.1.0-alpha"

__all__ = [
    "AmbientEngine",
    "EngineConfig",
    "Event",
    "EventBus",
    "EventFilter",
    "AmbientError",
    "InvalidRule",
    "InvalidTrigger",
    "ProviderError",
]
