# tests/test_commands.py

from __future__ import annotations

from now_or_never.cli.commands import CommandRegistry, registry


def test_command_registry_routes_2_and_3_params(state) -> None:
    reg = CommandRegistry()
    called = {"h2": 0, "h3": 0}
    notes: list[str] = []

    def h2(state, args):
        called["h2"] += 1
        return "h2:" + ",".join(args)

    def h3(state, args, emit):
        called["h3"] += 1
        if emit is not None:
            emit("note")
        return "h3"

    reg.register("a", h2, "a", aliases=["alpha"])
    reg.register("b", h3, "b")

    assert reg.handle(state, "/a x y") == "h2:x,y"
    assert reg.handle(state, "/ALPHA") == "h2:"
    assert reg.handle(state, "/b", emit=notes.append) == "h3"
    assert called == {"h2": 2, "h3": 1}
    assert notes == ["note"]


def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert reg.handle(state, "hello") is None
    assert "Unknown command" in (reg.handle(state, "/nope") or "")
    assert "Empty command" in (reg.handle(state, "/") or "")


def test_help_lists_registered_commands(state) -> None:
    reply = registry.handle(state, "/help") or ""
    for name in ("/new", "/done", "/del", "/hold", "/release", "/purge", "/clear"):
        assert name in reply


def test_new_with_minutes_and_default_duration(state) -> None:
    reply = registry.handle(state, "/new 25 write report") or ""
    assert "created" in reply
    reply = registry.handle(state, "/new call mom") or ""
    assert "created" in reply

    by_name = {t.name: t for t in state.engine.tasks()}
    assert by_name["write report"].duration == 25 * 60
    assert by_name["call mom"].duration == 60 * 60


def test_new_rejects_missing_name(state) -> None:
    assert "Usage" in (registry.handle(state, "/new") or "")
    assert "rejected" in (registry.handle(state, "/new 10") or "")
    assert state.engine.tasks() == []


def test_quick_uses_presets_only(state) -> None:
    listing = registry.handle(state, "/quick") or ""
    assert "5, 15, 30, 60, 120" in listing

    assert "Unknown preset" in (registry.handle(state, "/quick 7 tea") or "")
    assert "created (15 min)" in (registry.handle(state, "/q 15 tea") or "")
    [task] = state.engine.tasks()
    assert task.duration == 15 * 60


def test_done_accepts_unique_prefix(state) -> None:
    registry.handle(state, "/new 5 stretch")
    [task] = state.engine.tasks()

    reply = registry.handle(state, f"/done {task.id[:6]}") or ""
    assert "completed" in reply
    assert "Streak: 1" in reply
    assert state.engine.tasks() == []
    assert "No active task" in (registry.handle(state, f"/done {task.id}") or "")


def test_del_then_hold_resurrects_after_hold_duration(state, clock) -> None:
    registry.handle(state, "/new 30 inbox zero")
    [task] = state.engine.tasks()

    assert "graveyard" in (registry.handle(state, f"/del {task.id}") or "")
    assert task.id in (registry.handle(state, "/grave") or "")

    notes: list[str] = []
    reply = registry.handle(state, f"/hold {task.id}", emit=notes.append) or ""
    assert "Holding" in reply
    assert notes and "3s" in notes[0]

    clock.advance(3.0)
    assert state.engine.run_pending() == 1

    [back] = state.engine.tasks()
    assert back.name == "inbox zero"
    assert back.id != task.id
    assert back.duration == 30 * 60
    assert "Graveyard is empty" in (registry.handle(state, "/grave") or "")


def test_release_cancels_the_hold(state, clock) -> None:
    registry.handle(state, "/new 30 inbox zero")
    [task] = state.engine.tasks()
    registry.handle(state, f"/del {task.id}")
    registry.handle(state, f"/hold {task.id}")

    clock.advance(2.9)
    assert "released" in (registry.handle(state, f"/release {task.id}") or "")
    clock.advance(1.0)
    assert state.engine.run_pending() == 0
    assert state.engine.tasks() == []
    assert "No hold" in (registry.handle(state, f"/release {task.id}") or "")


def test_purge_removes_grave_entry(state) -> None:
    registry.handle(state, "/new 30 old idea")
    [task] = state.engine.tasks()
    registry.handle(state, f"/del {task.id}")

    assert "deleted for good" in (registry.handle(state, f"/purge {task.id}") or "")
    assert state.engine.graves() == []
    assert "No grave entry" in (registry.handle(state, f"/hold {task.id}") or "")


def test_clear_requires_confirmation(state) -> None:
    registry.handle(state, "/new 30 a")
    registry.handle(state, "/new 30 b")

    assert "Confirm" in (registry.handle(state, "/clear") or "")
    assert len(state.engine.tasks()) == 2

    assert "cleared" in (registry.handle(state, "/clear yes") or "")
    assert state.engine.tasks() == []
    assert "Streak: 0" in (registry.handle(state, "/stats") or "")


def test_list_and_status(state) -> None:
    assert "No active tasks" in (registry.handle(state, "/ls") or "")
    registry.handle(state, "/new 10 soon")
    registry.handle(state, "/new 90 later")

    board = (registry.handle(state, "/list") or "").splitlines()
    assert board[0].startswith("Active tasks")
    assert "soon" in board[1] and "later" in board[2]

    assert "SQLite" in (registry.handle(state, "/status") or "")


def test_events_shows_recent_history(state) -> None:
    registry.handle(state, "/new 30 a")
    [task] = state.engine.tasks()
    registry.handle(state, f"/del {task.id}")

    lines = (registry.handle(state, "/events 2") or "").splitlines()
    assert lines[0] == "Recent events:"
    assert len(lines) == 3
    assert "task_created" in lines[1]
    assert "task_migrated t=" in lines[2] and "detail=deleted" in lines[2]

    assert "Usage" in (registry.handle(state, "/events lots") or "")
