# tests/test_tick_driver.py

from __future__ import annotations

import asyncio

import pytest

from now_or_never.core.clock import SystemClock
from now_or_never.core.events import EventType
from now_or_never.tasks.engine import LifecycleEngine
from now_or_never.tasks.tick_driver import run_tick_driver, start_tick_driver_in_background

from .fakes import RecordingListener


def _engine(clock) -> tuple[LifecycleEngine, RecordingListener]:
    listener = RecordingListener()
    engine = LifecycleEngine(clock=clock, settle_delay_seconds=0.02, hold_duration_seconds=0.05)
    engine.bus.subscribe(listener)
    engine.init()
    return engine, listener


@pytest.mark.asyncio
async def test_driver_migrates_a_lapsed_task() -> None:
    clock = SystemClock()
    engine, listener = _engine(clock)
    task = engine.create_task("blink", duration_seconds=0.05)

    runner = asyncio.create_task(run_tick_driver(engine, clock, interval_seconds=0.05))

    await asyncio.sleep(0.4)
    runner.cancel()
    with pytest.raises(asyncio.CancelledError):
        await runner

    assert engine.get_task(task.id) is None
    assert engine.get_grave(task.id) is not None
    assert listener.of_type(EventType.TASK_MIGRATED)


@pytest.mark.asyncio
async def test_driver_fires_hold_timer_and_stops_on_event() -> None:
    clock = SystemClock()
    engine, listener = _engine(clock)
    task = engine.create_task("again", minutes=10)
    engine.delete(task.id)

    stop = asyncio.Event()
    runner = asyncio.create_task(run_tick_driver(engine, clock, interval_seconds=0.1, stop_event=stop))
    await asyncio.sleep(0.01)
    engine.begin_resurrect(task.id)

    await asyncio.sleep(0.3)
    stop.set()
    await asyncio.wait_for(runner, timeout=2.0)

    assert engine.get_grave(task.id) is None
    assert len(engine.tasks()) == 1
    assert listener.of_type(EventType.GRAVE_RESURRECTED)


def test_background_runner_starts_and_stops() -> None:
    clock = SystemClock()
    engine, _ = _engine(clock)

    runner = start_tick_driver_in_background(engine, clock, interval_seconds=0.05)
    assert runner is not None
    runner.stop()
    runner.join(timeout=2.0)
    assert not runner.thread.is_alive()
