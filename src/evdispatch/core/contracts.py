from __future__ import annotations

from typing import Any, Callable, Optional, Protocol, runtime_checkable

__all__ = [
    "EventName",
    "Outcome",
    "ListenerFn",
    "Task",
    "Resolver",
    "Scheduler",
    "normalize_outcome",
]


# --------- Primitive / aliases ---------
EventName = str
Outcome = Optional[bool]                       # None means "continue"
ListenerFn = Callable[[EventName, Any], Outcome]
Task = Callable[[], None]


# --------- Consumed capabilities ---------
@runtime_checkable
class Resolver(Protocol):
    """Resolve-by-key service used to turn string refs into values."""

    def make(self, identifier: str) -> Any: ...


@runtime_checkable
class Scheduler(Protocol):
    """Named-slot deferred task service.

    Scheduling a slot that is still pending is resolved by the scheduler
    (the bundled ones replace the pending task).
    """

    def schedule_after(self, slot_id: str, delay_ms: float, task: Task) -> None: ...

    def cancel(self, slot_id: str) -> None: ...


def normalize_outcome(result: Any) -> bool:
    """Absent outcome counts as "continue"; only an explicit False halts."""
    if result is None:
        return True
    return result is not False
