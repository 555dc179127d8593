# src/evdispatch/provider.py
from __future__ import annotations

from evdispatch.core import log
from evdispatch.core.container import Container
from evdispatch.core.dispatcher import Dispatcher
from evdispatch.core.settings import DispatcherConfig

# container keys
DISPATCHER = "evdispatch.dispatcher"
SCHEDULER = "evdispatch.scheduler"
CONFIG = "evdispatch.config"

l = log.get("evdispatch.provider")


class EventServiceProvider:
    """Binds a shared Dispatcher into a container.

    The dispatcher resolves string listener refs through the same container
    and picks up an optional scheduler and config bound under SCHEDULER and
    CONFIG at the time it is first made.
    """

    def __init__(self, container: Container):
        self.container = container

    def _make_dispatcher(self) -> Dispatcher:
        c = self.container
        scheduler = c.make(SCHEDULER) if c.bound(SCHEDULER) else None
        config = c.make(CONFIG) if c.bound(CONFIG) else DispatcherConfig.from_env()
        l.info("creating dispatcher name=%s scheduler=%s", config.name, type(scheduler).__name__)
        return Dispatcher(resolver=c, scheduler=scheduler, config=config)

    def register(self) -> None:
        self.container.singleton(DISPATCHER, self._make_dispatcher)


def dispatcher_from(container: Container) -> Dispatcher:
    """Shared dispatcher of a container prepared by EventServiceProvider."""
    return container.make(DISPATCHER)
