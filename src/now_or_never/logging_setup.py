# src/now_or_never/logging_setup.py

"""
Logging for the tracker.

Three sinks:
- console (stderr): filtered so the REPL prompt stays readable,
- now_or_never.log: everything at DEBUG, for post-mortems,
- events.log: one line per lifecycle event (created, expiring, migrated, ...),
  written from the engine's event bus rather than from log calls.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from pathlib import Path

from .core.events import EngineEvent, EventBus, describe_event

EVENT_LOGGER_NAME = "now_or_never.events"

# The console connector already prints a notice for every user-visible
# transition, so in interactive mode these modules only reach stderr on WARNING+.
_INTERACTIVE_QUIET = (
    "now_or_never.tasks.tick_driver",
    "now_or_never.tasks.engine",
    "now_or_never.tasks.timers",
    "now_or_never.tasks.graveyard",
)


class _ConsoleNoiseFilter(logging.Filter):
    def __init__(self, *, interactive: bool) -> None:
        super().__init__()
        self._interactive = interactive

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name

        if name.startswith("now_or_never."):
            if name.startswith("now_or_never.tasks.tick_driver"):
                # Runs once per tick on a background thread.
                return record.levelno >= logging.WARNING
            if self._interactive and name.startswith(_INTERACTIVE_QUIET):
                return record.levelno >= logging.WARNING
            return True

        # asyncio, py.warnings and anything else third-party.
        return record.levelno >= logging.ERROR


def _formatter() -> logging.Formatter:
    return logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def setup_logging(
    *,
    log_dir: str | Path = ".local/now_or_never",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    interactive: bool = True,
) -> Path:
    """
    Configure the root logger once, before the engine starts.

    With interactive=False (no console REPL) engine transitions are logged to
    stderr at INFO, since nothing else reports them.
    Returns the log directory.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(console_level)
    ch.setFormatter(_formatter())
    ch.addFilter(_ConsoleNoiseFilter(interactive=interactive))
    root.addHandler(ch)

    fh = logging.FileHandler(str(log_dir / "now_or_never.log"), encoding="utf-8")
    fh.setLevel(file_level)
    fh.setFormatter(_formatter())
    root.addHandler(fh)

    logging.captureWarnings(True)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    return log_dir


def attach_event_log(bus: EventBus, *, log_dir: str | Path) -> Callable[[], None]:
    """
    Append every engine event to <log_dir>/events.log.

    Task names are left out; ids, causes and timestamps are enough to
    reconstruct what happened. Returns a callable that detaches the log.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    handler = logging.FileHandler(str(log_dir / "events.log"), encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(asctime)s %(message)s", datefmt="%Y-%m-%d %H:%M:%S"))

    event_logger = logging.getLogger(EVENT_LOGGER_NAME)
    event_logger.setLevel(logging.INFO)
    # Keep the audit trail out of the console and the debug log.
    event_logger.propagate = False
    event_logger.addHandler(handler)

    def _write(event: EngineEvent) -> None:
        event_logger.info("%s", describe_event(event))

    listener_id = bus.subscribe(_write)

    def detach() -> None:
        bus.unsubscribe(listener_id)
        event_logger.removeHandler(handler)
        handler.close()

    return detach
