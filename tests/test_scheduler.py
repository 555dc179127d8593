import asyncio

import pytest

from evdispatch.core.clock import BeatClock
from evdispatch.core.scheduler import LoopScheduler, TickScheduler


def test_tick_runs_due_tasks_in_due_then_submission_order():
    s = TickScheduler()
    out = []
    s.schedule_after("late", 10, lambda: out.append("late"))
    s.schedule_after("a", 0, lambda: out.append("a"))
    s.schedule_after("b", 0, lambda: out.append("b"))

    assert s.tick() == 2
    assert out == ["a", "b"]
    assert s.tick(10) == 1
    assert out == ["a", "b", "late"]
    assert s.now_ms == 10


def test_same_slot_replaces_pending_task():
    s = TickScheduler()
    out = []
    s.schedule_after("slot", 0, lambda: out.append(1))
    s.schedule_after("slot", 0, lambda: out.append(2))

    assert s.pending() == 1
    s.tick()
    assert out == [2]


def test_task_scheduled_during_tick_waits_for_next_tick():
    s = TickScheduler()
    out = []

    def first():
        out.append("first")
        s.schedule_after("again", 0, lambda: out.append("again"))

    s.schedule_after("first", 0, first)
    s.tick()
    assert out == ["first"]
    s.tick()
    assert out == ["first", "again"]


def test_cancel_and_release():
    s = TickScheduler()
    out = []
    s.schedule_after("x", 0, lambda: out.append("x"))
    s.cancel("x")
    s.cancel("never-scheduled")
    s.tick()

    assert out == []
    assert not s.has("x")


def test_failing_task_does_not_stop_the_tick():
    s = TickScheduler()
    out = []

    def boom():
        raise ValueError("bad task")

    s.schedule_after("boom", 0, boom)
    s.schedule_after("ok", 0, lambda: out.append("ok"))
    assert s.tick() == 2
    assert out == ["ok"]


def test_loop_scheduler_requires_running_loop():
    with pytest.raises(RuntimeError):
        LoopScheduler().schedule_after("x", 0, lambda: None)


@pytest.mark.asyncio
async def test_loop_scheduler_replace_cancel_and_delay():
    s = LoopScheduler()
    out = []
    s.schedule_after("slot", 0, lambda: out.append("old"))
    s.schedule_after("slot", 0, lambda: out.append("new"))
    s.schedule_after("delayed", 20, lambda: out.append("delayed"))
    s.schedule_after("gone", 0, lambda: out.append("gone"))
    s.cancel("gone")
    assert s.has("slot") and not s.has("gone")

    await asyncio.sleep(0)
    await asyncio.sleep(0)
    assert out == ["new"]
    assert not s.has("slot")

    await asyncio.sleep(0.05)
    assert out == ["new", "delayed"]
    assert s.pending() == 0


@pytest.mark.asyncio
async def test_loop_scheduler_cancel_all():
    s = LoopScheduler()
    out = []
    for i in range(3):
        s.schedule_after(f"s{i}", 5, lambda i=i: out.append(i))
    s.cancel_all()
    await asyncio.sleep(0.02)
    assert out == []


def test_clock_rejects_non_positive_hz():
    with pytest.raises(ValueError):
        BeatClock(hz=0)


@pytest.mark.asyncio
async def test_tick_scheduler_driven_by_clock():
    clock = BeatClock(hz=100, name="test")
    s = TickScheduler()
    out = []

    def stop_after_work():
        out.append("ran")
        clock.stop()

    s.schedule_after("work", 25, stop_after_work)
    await asyncio.wait_for(s.run(clock), timeout=2.0)

    assert out == ["ran"]
    assert s.now_ms >= 25
    assert not clock.running
