# src/evdispatch/core/errors.py
from __future__ import annotations

from typing import Optional

__all__ = [
    "EventError",
    "InvalidListenerError",
    "InvalidSubscriberError",
    "UnresolvedIdentifierError",
    "SchedulerMissingError",
    "ConfigError",
]


class EventError(Exception):
    """Base class for every error raised by evdispatch."""


class InvalidListenerError(EventError, TypeError):
    """Listener is neither callable nor exposes handle(event, payload)."""


class InvalidSubscriberError(EventError, TypeError):
    """Subscriber does not expose subscribe(dispatcher)."""


class UnresolvedIdentifierError(EventError, LookupError):
    """Resolver has no binding for a string identifier."""

    def __init__(self, identifier: str, reason: Optional[str] = None):
        self.identifier = identifier
        msg = f"cannot resolve {identifier!r}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)


class SchedulerMissingError(EventError, RuntimeError):
    """Background dispatch requested on a dispatcher without a scheduler."""


class ConfigError(EventError, ValueError):
    pass
