# src/evdispatch/core/listeners.py
from __future__ import annotations

import time
from typing import Any, Optional

from evdispatch.core import log
from evdispatch.core.contracts import EventName, Outcome, Scheduler

PROCESS_ID_PREFIX = "BackgroundListener._"


class Listener:
    """Base class for object listeners.

    Subclasses implement handle(); returning False from it stops further
    propagation when the event is fired with halt enabled.
    """

    def handle(self, event: EventName, payload: Any) -> Outcome:
        raise NotImplementedError("Cannot handle event, method is abstract")

    def __call__(self, event: EventName, payload: Any) -> Outcome:
        return self.handle(event, payload)


class BackgroundListener(Listener):
    """
    Processes its event on a later scheduler tick instead of inline.

    Because the work happens after the dispatch pass is over, a background
    listener always reports "continue" and can never halt propagation.
    Scheduling again under the same process_id before the pending run fires
    is resolved by the scheduler (the bundled ones keep only the newest).
    """

    def __init__(self, scheduler: Scheduler, *, process_delay_ms: float = 0.0, process_id: Optional[str] = None):
        self.scheduler = scheduler
        self.process_delay_ms = float(process_delay_ms)
        self.process_id = process_id or f"{PROCESS_ID_PREFIX}{type(self).__name__}({time.time()})"
        self.l = log.get(f"evdispatch.listener.{type(self).__name__}")

    def handle(self, event: EventName, payload: Any) -> Outcome:
        self.l.debug("defer event=%s slot=%s delay_ms=%.1f", event, self.process_id, self.process_delay_ms)
        self.scheduler.schedule_after(
            self.process_id,
            self.process_delay_ms,
            lambda: self.process(event, payload),
        )
        return True

    def process(self, event: EventName, payload: Any) -> None:
        """Override me in subclasses."""
        raise NotImplementedError("Cannot process event, method is abstract")
