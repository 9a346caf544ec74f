# tests/test_task_api.py

from __future__ import annotations

from now_or_never.connectors.console_connector import format_notice
from now_or_never.core.events import EngineEvent, EventType
from now_or_never.tasks.task_api import display_name, format_stats, resolve_id
from now_or_never.tasks.task_models import GraveEntry


def test_display_name_strips_control_characters() -> None:
    assert display_name("evil\x1b[31m name‮\n") == "evil[31m name"
    assert display_name("<b>café</b> & 'x'") == "<b>café</b> & 'x'"


def test_resolve_id_exact_or_unique_prefix() -> None:
    ids = ["abc1", "abc2", "xyz9"]
    assert resolve_id(ids, "abc1") == "abc1"
    assert resolve_id(ids, "xy") == "xyz9"
    assert resolve_id(ids, "abc") is None
    assert resolve_id(ids, "") is None
    assert resolve_id(ids, "nope") is None


def test_format_stats_reports_rounded_rate(engine, clock) -> None:
    for name in ("a", "b"):
        engine.complete(engine.create_task(name, minutes=5).id)
    engine.delete(engine.create_task("c", minutes=5).id)

    text = format_stats(engine.snapshot())
    assert "Completed: 2" in text
    assert "Expired: 1" in text
    assert "Streak: 0" in text
    assert "Success rate: 67%" in text


def test_format_notice_for_user_facing_events() -> None:
    entry = GraveEntry(id="g1", name="laundry\x07", deadline=20.0, created=10.0, expired_at=20.0)
    migrated = EngineEvent(
        event_id=1,
        event_type=EventType.TASK_MIGRATED,
        timestamp=20.0,
        subject_id="g1",
        record=entry,
        detail="expired",
    )
    assert format_notice(migrated) == "[GONE] laundry (g1) is in the graveyard."

    failed = EngineEvent(
        event_id=2,
        event_type=EventType.PERSISTENCE_FAILED,
        timestamp=20.0,
        subject_id=None,
        record=None,
        detail="save failed: disk full",
    )
    assert "disk full" in (format_notice(failed) or "")

    created = EngineEvent(
        event_id=3,
        event_type=EventType.TASK_CREATED,
        timestamp=20.0,
        subject_id="t1",
        record=None,
        detail="created",
    )
    assert format_notice(created) is None
