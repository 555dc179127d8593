# src/evdispatch/core/dispatcher.py
from __future__ import annotations

import itertools
import uuid
from typing import Any, Iterable, List, Optional, Union

from evdispatch.core import log
from evdispatch.core.contracts import EventName, Resolver, Scheduler, normalize_outcome
from evdispatch.core.errors import (
    InvalidListenerError,
    InvalidSubscriberError,
    SchedulerMissingError,
    UnresolvedIdentifierError,
)
from evdispatch.core.metrics import Timer, inc_counter, set_gauge
from evdispatch.core.registry import (
    ListenerRegistry,
    Registration,
    WildcardRegistry,
    contains_wildcard,
)
from evdispatch.core.settings import QUEUE, DispatcherConfig

BACKGROUND_SLOT_PREFIX = "evdispatch.Dispatcher._dispatching"


def _name_of(obj: Any) -> str:
    return getattr(obj, "__qualname__", None) or type(obj).__name__


class Dispatcher:
    """
    In-process event dispatcher.

    Listeners are registered under exact event names or `*` wildcard
    patterns and invoked with (event, payload). Wildcard listeners run
    before exact ones; within each group, registration order is kept.
    When fired with halt enabled, the first listener returning False ends
    the pass.
    """

    def __init__(
        self,
        resolver: Optional[Resolver] = None,
        scheduler: Optional[Scheduler] = None,
        config: Optional[DispatcherConfig] = None,
    ):
        self.resolver = resolver
        self.scheduler = scheduler
        self.config = config or DispatcherConfig()
        self.l = log.get(f"evdispatch.{self.config.name}")
        self._listeners = ListenerRegistry()
        self._wildcard_listeners = WildcardRegistry()
        # fixed per instance; see fire()
        self.background_slot = f"{BACKGROUND_SLOT_PREFIX}.{self.config.name}#{uuid.uuid4().hex[:8]}"
        self._background_seq = itertools.count(1)

    @property
    def listeners(self) -> ListenerRegistry:
        return self._listeners

    @property
    def wildcard_listeners(self) -> WildcardRegistry:
        return self._wildcard_listeners

    def _registry_for(self, event: EventName) -> ListenerRegistry:
        return self._wildcard_listeners if contains_wildcard(event) else self._listeners

    # -------------------- Registration --------------------
    def listen(self, events: Union[EventName, Iterable[EventName]], listener: Any) -> None:
        """Register a listener for one or more events (exact names or wildcard patterns).

        Raises InvalidListenerError / UnresolvedIdentifierError if the listener
        cannot be resolved.
        """
        if isinstance(events, str):
            events = [events]

        for event in events:
            registration = self._registration(listener)
            registry = self._registry_for(event)
            if registry.add(event, registration):
                self.l.debug("listen event=%s listener=%s", event, _name_of(registration.listener))
            self._track(registry)

    def subscribe(self, subscriber: Any) -> None:
        """Register an event subscriber (instance or resolver identifier)."""
        subscriber = self.make_subscriber(subscriber)
        subscriber.subscribe(self)
        self.l.info("subscribed %s", _name_of(subscriber))

    def forget(self, event: EventName) -> None:
        """Remove all listeners registered under exactly this event name or pattern."""
        registry = self._registry_for(event)
        if registry.remove(event):
            self.l.info("forget event=%s", event)
            self._track(registry)

    def _track(self, registry: ListenerRegistry) -> None:
        # labelled by dispatcher and registry kind only; event names are unbounded
        kind = "wildcard" if registry is self._wildcard_listeners else "exact"
        set_gauge("registered_listeners", float(registry.total()), dispatcher=self.config.name, kind=kind)

    # -------------------- Queries --------------------
    def has_listeners(self, event: EventName) -> bool:
        return event in self._listeners or self._wildcard_listeners.any_match(event)

    def get_listeners(self, event: EventName) -> List[Any]:
        """All listeners matching `event`: wildcard matches first, then exact ones."""
        return [r.listener for r in self._matching(event)]

    def _matching(self, event: EventName) -> List[Registration]:
        return self._wildcard_listeners.matching(event) + self._listeners.get(event)

    # -------------------- Dispatch --------------------
    def fire(
        self,
        event: EventName,
        payload: Any = None,
        in_background: bool = False,
        halt: Optional[bool] = None,
    ) -> None:
        """
        Dispatch an event.

        - payload defaults to a fresh empty dict
        - in_background=True defers the dispatch to a later scheduler tick and
          returns immediately
        - halt (default from config) stops the pass at the first listener
          returning False
        """
        if payload is None:
            payload = {}
        if halt is None:
            halt = self.config.default_halt

        if not in_background:
            self.dispatch(event, payload, halt)
            return

        if self.scheduler is None:
            raise SchedulerMissingError(f"cannot fire {event!r} in background: no scheduler configured")

        slot = self.background_slot
        if self.config.background_policy == QUEUE:
            slot = f"{slot}:{next(self._background_seq)}"

        scheduler = self.scheduler

        def task() -> None:
            try:
                self.dispatch(event, payload, halt)
            finally:
                scheduler.cancel(slot)

        scheduler.schedule_after(slot, self.config.background_delay_ms, task)
        inc_counter("events_deferred_total", 1, dispatcher=self.config.name)
        self.l.debug("deferred event=%s slot=%s", event, slot)

    def dispatch(self, event: EventName, payload: Any = None, halt: bool = True) -> None:
        """Invoke matching listeners in order. Listener exceptions propagate."""
        if payload is None:
            payload = {}
        registrations = self._matching(event)
        self.l.debug("dispatch event=%s listeners=%d halt=%s", event, len(registrations), halt)
        inc_counter("events_dispatched_total", 1, dispatcher=self.config.name)

        with Timer("dispatch_latency_ms", dispatcher=self.config.name):
            for registration in registrations:
                inc_counter("listener_calls_total", 1, dispatcher=self.config.name)
                outcome = normalize_outcome(registration.call(event, payload))
                if halt and not outcome:
                    inc_counter("dispatch_halted_total", 1, dispatcher=self.config.name)
                    self.l.debug("halted event=%s by %s", event, _name_of(registration.listener))
                    break

    # -------------------- Resolution --------------------
    def _resolve(self, ref: str) -> Any:
        if self.resolver is None:
            raise UnresolvedIdentifierError(ref, "no resolver configured")
        return self.resolver.make(ref)

    def make_listener(self, listener: Any) -> Any:
        """Return the listener, resolving string identifiers through the resolver.

        Raises InvalidListenerError unless the value is callable or has a
        callable handle(event, payload).
        """
        if isinstance(listener, str):
            listener = self._resolve(listener)

        if callable(listener) or callable(getattr(listener, "handle", None)):
            return listener

        raise InvalidListenerError(
            f"listener must be callable or expose handle(event, payload), got {type(listener).__name__}"
        )

    def _registration(self, listener: Any) -> Registration:
        listener = self.make_listener(listener)
        call = listener if callable(listener) else listener.handle
        return Registration(listener=listener, call=call)

    def make_subscriber(self, subscriber: Any) -> Any:
        if isinstance(subscriber, str):
            subscriber = self._resolve(subscriber)

        if callable(getattr(subscriber, "subscribe", None)):
            return subscriber

        raise InvalidSubscriberError(
            f"subscriber must expose subscribe(dispatcher), got {type(subscriber).__name__}"
        )
