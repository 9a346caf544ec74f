# src/now_or_never/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, loads the persisted snapshot, then:
- mirrors engine events into events.log,
- runs the tick driver in a background thread,
- runs the console REPL in the main thread (optional).
"""

from __future__ import annotations

import logging
import signal
import threading

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import attach_event_log, setup_logging
from ..tasks.tick_driver import start_tick_driver_in_background

logger = logging.getLogger(__name__)


def _shutdown(state) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        state.engine.shutdown()
    except Exception:
        logger.exception("Engine shutdown failed.")


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    log_dir = getattr(settings, "data_dir", ".local/now_or_never")
    setup_logging(log_dir=log_dir, console_level=console_level, interactive=settings.console_enabled)

    logger.info("Starting %s...", getattr(settings, "app_name", "now-or-never"))

    # IMPORTANT: reuse same settings object
    state = create_initial_state(settings=settings)
    detach_event_log = attach_event_log(state.engine.bus, log_dir=log_dir)
    state.engine.init()

    driver = start_tick_driver_in_background(
        state.engine,
        state.clock,
        interval_seconds=settings.tick_interval_seconds,
    )

    # Use an Event so main can wait without a busy while-loop.
    stop_main = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    try:
        # With the console up, Ctrl+C stays a KeyboardInterrupt inside input().
        if not settings.console_enabled:
            signal.signal(signal.SIGINT, _handle_signal)
        signal.signal(signal.SIGTERM, _handle_signal)
    except Exception:
        # Some platforms may not support SIGTERM, etc.
        pass

    try:
        if settings.console_enabled:
            run_console_loop(state)
            stop_main.set()
        else:
            logger.info("Console disabled. Running the tick driver only. Press Ctrl+C to stop.")
            stop_main.wait()

    finally:
        if driver is not None:
            driver.stop()
            driver.join(timeout=5.0)

        _shutdown(state)
        detach_event_log()
        logger.info("Bye.")


if __name__ == "__main__":
    main()
