from __future__ import annotations

import asyncio
import time

from evdispatch.core import log
from evdispatch.core.metrics import observe_hist


class BeatClock:
    """
    Async beat source for the tick-driven scheduler.

    Usage:
        async for ts, i in clock.ticks():
            ...
    """

    def __init__(self, *, hz: float = 1.0, name: str = "clock"):
        self.hz = float(hz)
        if self.hz <= 0:
            raise ValueError("hz must be > 0")
        self.dt = 1.0 / self.hz
        self.name = name
        self.l = log.get(f"evdispatch.clock.{name}")
        self._running: bool = False

    @property
    def running(self) -> bool:
        return self._running

    def stop(self) -> None:
        """Make the active ticks() generator return after its current beat."""
        self._running = False

    async def ticks(self):
        """Yields (unix_ts, index) once per beat until stop() is called."""
        if self._running:
            self.l.warning("ticks() called twice; reusing the same clock is unsupported.")

        self._running = True
        self.l.info("clock start hz=%.3f (dt=%.3f)", self.hz, self.dt)
        i = 0
        try:
            next_t = time.perf_counter()  # monotonic scheduling
            while self._running:
                now = time.perf_counter()
                if now < next_t:
                    await asyncio.sleep(next_t - now)
                i += 1
                yield (time.time(), i)
                after = time.perf_counter()
                observe_hist("clock_loop_ms", (after - now) * 1000.0, clock=self.name)
                # schedule next beat; prevent drift by using max()
                next_t = max(next_t + self.dt, after)
        finally:
            self._running = False
            self.l.info("clock stop after %d beats", i)
