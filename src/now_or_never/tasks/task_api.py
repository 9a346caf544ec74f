# tasks/task_api.py

from __future__ import annotations

import unicodedata
from collections.abc import Iterable

from .engine import LifecycleEngine
from .task_models import EngineSnapshot, GraveView, TaskView
from .urgency import format_remaining, format_retention


def display_name(name: str) -> str:
    """
    Task names are user-controlled: drop control / format characters before
    they reach a terminal (ANSI escapes, bidi overrides, newlines).
    """
    return "".join(ch for ch in name if unicodedata.category(ch)[0] != "C")


def resolve_id(candidates: Iterable[str], token: str) -> str | None:
    """Exact id, or a prefix that matches exactly one candidate."""
    token = (token or "").strip()
    if not token:
        return None
    ids = list(candidates)
    if token in ids:
        return token
    matches = [i for i in ids if i.startswith(token)]
    return matches[0] if len(matches) == 1 else None


def resolve_task_id(engine: LifecycleEngine, token: str) -> str | None:
    return resolve_id((t.id for t in engine.tasks()), token)


def resolve_grave_id(engine: LifecycleEngine, token: str) -> str | None:
    return resolve_id((g.id for g in engine.graves()), token)


def format_task_line(view: TaskView, now: float) -> str:
    t = view.task
    flag = " (expiring)" if view.expiring else ""
    return (
        f"[{t.id}] {view.urgency.value:<8} "
        f"{format_remaining(t.deadline, now)} "
        f"{view.progress:5.1f}%  {display_name(t.name)}{flag}"
    )


def format_grave_line(view: GraveView) -> str:
    g = view.entry
    hold = " (holding)" if view.resurrect_pending else ""
    return f"[{g.id}] {format_retention(view.remaining_retention)}  {display_name(g.name)}{hold}"


def format_board(snapshot: EngineSnapshot) -> str:
    if not snapshot.tasks:
        return "No active tasks."
    lines = ["Active tasks (soonest first):"]
    lines.extend(format_task_line(v, snapshot.now) for v in snapshot.tasks)
    return "\n".join(lines)


def format_graveyard(snapshot: EngineSnapshot) -> str:
    if not snapshot.graveyard:
        return "Graveyard is empty."
    lines = ["Graveyard (hold to resurrect):"]
    lines.extend(format_grave_line(v) for v in snapshot.graveyard)
    return "\n".join(lines)


def format_stats(snapshot: EngineSnapshot) -> str:
    return (
        "Stats:\n"
        f"  Streak: {snapshot.streak}\n"
        f"  Completed: {snapshot.completed_count}\n"
        f"  Expired: {snapshot.expired_count}\n"
        f"  Success rate: {snapshot.success_percent}%"
    )
