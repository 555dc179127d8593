import pytest

from evdispatch.core.container import Container
from evdispatch.core.dispatcher import Dispatcher
from evdispatch.core.errors import UnresolvedIdentifierError
from evdispatch.core.scheduler import TickScheduler
from evdispatch.core.settings import DispatcherConfig
from evdispatch.provider import CONFIG, DISPATCHER, SCHEDULER, EventServiceProvider, dispatcher_from


def test_provider_binds_shared_dispatcher():
    c = Container()
    EventServiceProvider(c).register()

    d = dispatcher_from(c)
    assert isinstance(d, Dispatcher)
    assert d is c.make(DISPATCHER)
    assert d.resolver is c
    assert d.scheduler is None


def test_provider_uses_bound_scheduler_and_config(recorder):
    c = Container()
    ticks = TickScheduler()
    c.instance(SCHEDULER, ticks)
    c.instance(CONFIG, DispatcherConfig(name="app", background_policy="queue"))
    c.instance("listeners.audit", recorder.listener("audit"))
    EventServiceProvider(c).register()

    d = dispatcher_from(c)
    assert d.config.name == "app"
    d.listen("order.*", "listeners.audit")
    d.fire("order.paid", {"id": 7}, in_background=True)
    ticks.tick()

    assert recorder.calls == [("audit", "order.paid", {"id": 7})]


def test_config_from_env_when_not_bound(monkeypatch):
    monkeypatch.setenv("EVENTS_NAME", "from-env")
    c = Container()
    EventServiceProvider(c).register()

    assert dispatcher_from(c).config.name == "from-env"


def test_dispatcher_from_unprepared_container():
    with pytest.raises(UnresolvedIdentifierError):
        dispatcher_from(Container())
