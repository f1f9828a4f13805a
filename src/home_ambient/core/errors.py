"""
Error types for home-ambient.

Input validation errors are raised synchronously before any state changes.
Provider errors are recorded per action and never escape the dispatcher.
"""


class AmbientError(Exception):
    """Base class for all home-ambient errors."""


class InvalidTrigger(AmbientError, ValueError):
    """A trigger was submitted without a type or zone."""


class InvalidRule(AmbientError, ValueError):
    """A rule specification is malformed (missing triggers, zone or actions)."""


class ProviderError(AmbientError):
    """A capability provider call failed, timed out or is not configured."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
