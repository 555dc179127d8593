# tests/conftest.py
import os
import logging
import pytest

from evdispatch.core import log, metrics
from evdispatch.core.dispatcher import Dispatcher
from evdispatch.core.scheduler import TickScheduler


@pytest.fixture(scope="session", autouse=True)
def _bootstrap_logging_and_metrics():
    # Setup logging (reads LOG_LEVEL / LOG_JSON / .env if available)
    log.setup()

    interval = float(os.getenv("METRICS_INTERVAL_TEST", "1.0"))
    json_mode = (os.getenv("LOG_JSON", "0") == "1")
    metrics.start_exporter(interval_sec=interval, json_mode=json_mode,
                           logger=logging.getLogger("metrics"))
    yield
    metrics.stop_exporter()


@pytest.fixture(autouse=True)
def _fresh_metrics():
    metrics.reset()
    yield


class Recorder:
    """Collects (name, event, payload) calls; each listener returns a fixed outcome."""

    def __init__(self):
        self.calls = []

    def listener(self, name, outcome=True):
        def fn(event, payload):
            self.calls.append((name, event, payload))
            return outcome
        fn.__qualname__ = f"listener_{name}"
        return fn

    @property
    def names(self):
        return [c[0] for c in self.calls]


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def ticks():
    return TickScheduler()


@pytest.fixture
def dispatcher(ticks):
    return Dispatcher(scheduler=ticks)
