# src/evdispatch/core/scheduler.py
from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Dict, List, Optional, Tuple

from evdispatch.core import log
from evdispatch.core.clock import BeatClock
from evdispatch.core.contracts import Task
from evdispatch.core.metrics import inc_counter


def _run_task(l: logging.Logger, slot_id: str, task: Task) -> None:
    try:
        task()
    except Exception as e:
        # a failing task must not take the scheduler down with it
        inc_counter("scheduler_task_errors_total", 1)
        l.error("task error slot=%s err=%s", slot_id, e, exc_info=True)
    else:
        inc_counter("scheduler_tasks_total", 1)


class LoopScheduler:
    """
    Named-slot scheduler on top of an asyncio event loop.

    Scheduling a slot that is still pending cancels the pending task and
    replaces it. The slot is released right before its task runs, so a task
    may schedule the same slot again.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None, *, name: str = "scheduler"):
        self._loop = loop
        self.l = log.get(f"evdispatch.{name}")
        self._handles: Dict[str, Tuple[int, asyncio.Handle]] = {}
        self._seq = itertools.count(1)

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        # raises RuntimeError outside of a running loop
        return asyncio.get_running_loop()

    def schedule_after(self, slot_id: str, delay_ms: float, task: Task) -> None:
        loop = self._get_loop()
        self.cancel(slot_id)
        seq = next(self._seq)
        if delay_ms <= 0:
            handle: asyncio.Handle = loop.call_soon(self._fire, slot_id, seq, task)
        else:
            handle = loop.call_later(delay_ms / 1000.0, self._fire, slot_id, seq, task)
        self._handles[slot_id] = (seq, handle)
        self.l.debug("scheduled slot=%s delay_ms=%.1f", slot_id, delay_ms)

    def _fire(self, slot_id: str, seq: int, task: Task) -> None:
        current = self._handles.get(slot_id)
        if current is not None and current[0] == seq:
            del self._handles[slot_id]
        _run_task(self.l, slot_id, task)

    def cancel(self, slot_id: str) -> None:
        current = self._handles.pop(slot_id, None)
        if current is not None:
            current[1].cancel()
            self.l.debug("cancelled slot=%s", slot_id)

    def has(self, slot_id: str) -> bool:
        return slot_id in self._handles

    def cancel_all(self) -> None:
        for slot_id in list(self._handles):
            self.cancel(slot_id)

    def pending(self) -> int:
        return len(self._handles)


class TickScheduler:
    """
    Named-slot scheduler driven by explicit ticks on a virtual millisecond clock.

    tick() runs every task due at the new time, earliest due first and
    submission order among equals. Tasks submitted while a tick is running
    wait for the next tick, even with zero delay.
    """

    def __init__(self, *, name: str = "tick-scheduler"):
        self.l = log.get(f"evdispatch.{name}")
        self._now_ms = 0.0
        self._pending: Dict[str, Tuple[float, int, Task]] = {}
        self._seq = itertools.count(1)

    @property
    def now_ms(self) -> float:
        return self._now_ms

    def schedule_after(self, slot_id: str, delay_ms: float, task: Task) -> None:
        due = self._now_ms + max(0.0, float(delay_ms))
        if slot_id in self._pending:
            self.l.debug("replacing pending slot=%s", slot_id)
        self._pending[slot_id] = (due, next(self._seq), task)

    def cancel(self, slot_id: str) -> None:
        self._pending.pop(slot_id, None)

    def has(self, slot_id: str) -> bool:
        return slot_id in self._pending

    def pending(self) -> int:
        return len(self._pending)

    def tick(self, elapsed_ms: float = 0.0) -> int:
        """Advance the clock and run what is due. Returns the number of tasks run."""
        self._now_ms += max(0.0, float(elapsed_ms))
        due: List[Tuple[float, int, str]] = sorted(
            (when, seq, slot_id)
            for slot_id, (when, seq, _) in self._pending.items()
            if when <= self._now_ms
        )
        ran = 0
        for _, seq, slot_id in due:
            entry = self._pending.get(slot_id)
            # cancelled or replaced by an earlier task of this tick
            if entry is None or entry[1] != seq:
                continue
            del self._pending[slot_id]
            _run_task(self.l, slot_id, entry[2])
            ran += 1
        return ran

    async def run(self, clock: BeatClock) -> None:
        """Tick once per clock beat until the clock stops."""
        async for _ in clock.ticks():
            self.tick(clock.dt * 1000.0)
