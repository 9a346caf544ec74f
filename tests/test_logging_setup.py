# tests/test_logging_setup.py

from __future__ import annotations

import logging
from pathlib import Path

from now_or_never.core.events import EventBus, EventType, describe_event
from now_or_never.logging_setup import _ConsoleNoiseFilter, attach_event_log


def _record(name: str, level: int) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, "msg", None, None)


def test_event_log_writes_one_line_per_event(tmp_path: Path) -> None:
    bus = EventBus()
    detach = attach_event_log(bus, log_dir=tmp_path / "logs")
    try:
        bus.publish(EventType.TASK_MIGRATED, timestamp=1010.3, subject_id="abc", detail="expired")
        bus.publish(EventType.DATA_CLEARED, timestamp=1020.0)
    finally:
        detach()

    lines = (tmp_path / "logs" / "events.log").read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    assert lines[0].endswith("#1 task_migrated t=1010.300 id=abc detail=expired")
    assert lines[1].endswith("#2 data_cleared t=1020.000")

    # Detached: later events are not written.
    bus.publish(EventType.DATA_CLEARED, timestamp=1030.0)
    assert len((tmp_path / "logs" / "events.log").read_text(encoding="utf-8").splitlines()) == 2


def test_console_filter_quiets_engine_only_when_interactive() -> None:
    interactive = _ConsoleNoiseFilter(interactive=True)
    headless = _ConsoleNoiseFilter(interactive=False)

    migrated = _record("now_or_never.tasks.engine", logging.INFO)
    assert not interactive.filter(migrated)
    assert headless.filter(migrated)

    storage = _record("now_or_never.tasks.engine", logging.WARNING)
    assert interactive.filter(storage)

    tick = _record("now_or_never.tasks.tick_driver", logging.INFO)
    assert not interactive.filter(tick)
    assert not headless.filter(tick)

    assert interactive.filter(_record("now_or_never.cli.bootstrap", logging.INFO))
    assert not headless.filter(_record("asyncio", logging.WARNING))
    assert headless.filter(_record("asyncio", logging.ERROR))


def test_describe_event_omits_empty_fields() -> None:
    bus = EventBus()
    event = bus.publish(EventType.RESURRECT_CANCELLED, timestamp=5.0, subject_id="g1")
    assert describe_event(event) == "#1 resurrect_cancelled t=5.000 id=g1"
