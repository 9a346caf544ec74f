# tasks/tick_driver.py

"""
Tick driver.

A small asyncio loop that:
- calls engine.tick() once per interval (expiration, TTL sweep, urgency),
- wakes up early when a deferred timer (settle delay, hold) comes due,
- keeps going when a single tick fails.

The engine does all the work; the driver only owns wall-clock waiting.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from dataclasses import dataclass

from ..core.ports import Clock
from .engine import LifecycleEngine

logger = logging.getLogger(__name__)

_MIN_SLEEP_SECONDS = 0.01


async def run_tick_driver(
        engine: LifecycleEngine,
        clock: Clock,
        *,
        interval_seconds: float = 1.0,
        stop_event: asyncio.Event | None = None,
) -> None:
    """
    Drive the engine until cancelled or until stop_event is set.

    Every loop iteration samples the clock once and passes that value down, so
    one tick never sees two different "now"s.
    """
    interval = max(0.05, float(interval_seconds))
    next_tick = clock.now()
    logger.info("Tick driver started (interval=%.2fs).", interval)

    try:
        while stop_event is None or not stop_event.is_set():
            now = clock.now()
            try:
                if now >= next_tick:
                    engine.tick(now)
                    next_tick = now + interval
                else:
                    engine.run_pending(now)
            except Exception:
                logger.exception("Engine tick failed at now=%.3f", now)
                next_tick = now + interval

            wake_at = next_tick
            due = engine.next_timer_due()
            if due is not None:
                wake_at = min(wake_at, due)
            delay = min(interval, max(_MIN_SLEEP_SECONDS, wake_at - clock.now()))

            if stop_event is None:
                await asyncio.sleep(delay)
            else:
                with contextlib.suppress(asyncio.TimeoutError):
                    await asyncio.wait_for(stop_event.wait(), timeout=delay)
    finally:
        logger.info("Tick driver stopped.")


@dataclass(slots=True)
class TickDriverRunner:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    stop_event: asyncio.Event

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.stop_event.set)
        except Exception:
            logger.debug("Failed to signal tick driver stop.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


def start_tick_driver_in_background(
        engine: LifecycleEngine,
        clock: Clock,
        *,
        interval_seconds: float = 1.0,
) -> TickDriverRunner | None:
    """
    Run the tick driver on a daemon thread with its own event loop, so the
    blocking console REPL can own the main thread.
    """
    ready = threading.Event()
    holder: dict[str, object] = {}

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        stop_event = asyncio.Event()

        holder["loop"] = loop
        holder["stop_event"] = stop_event
        ready.set()

        try:
            loop.run_until_complete(
                run_tick_driver(engine, clock, interval_seconds=interval_seconds, stop_event=stop_event)
            )
        finally:
            with contextlib.suppress(Exception):
                loop.stop()
            with contextlib.suppress(Exception):
                loop.close()

    t = threading.Thread(target=runner, name="tick-driver", daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    stop_event = holder.get("stop_event")

    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(stop_event, asyncio.Event):
        logger.error("Tick driver thread did not initialize properly.")
        return None

    logger.info("Tick driver background thread started.")
    return TickDriverRunner(thread=t, loop=loop, stop_event=stop_event)
