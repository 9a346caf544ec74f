# src/now_or_never/cli/commands.py

from __future__ import annotations

import contextlib
import inspect
import logging
from collections.abc import Callable
from typing import cast

from ..core.errors import TaskValidationError
from ..core.events import describe_event
from ..core.state import AppState
from ..tasks.task_api import (
    display_name,
    format_board,
    format_graveyard,
    format_stats,
    resolve_grave_id,
    resolve_task_id,
)

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /new, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except Exception:
            nparams = 3

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return h3(state, args, emit)

        h2 = cast(CommandHandler2, handler)
        return h2(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _parse_positive_int(raw: str) -> int | None:
    try:
        value = int(raw)
    except ValueError:
        return None
    return value if value > 0 else None


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    settings = state.settings
    storage = "SQLite" if state.persistent else "memory-only"
    return (
        "Status:\n"
        f"  Storage: {storage}\n"
        f"  Tick interval: {getattr(settings, 'tick_interval_seconds', 1.0)}s\n"
        f"  Default duration: {getattr(settings, 'default_minutes', 60)} min\n"
        f"  Quick presets: {', '.join(str(m) for m in getattr(settings, 'quick_presets', []))}"
    )


def cmd_new(state: AppState, args: list[str]) -> str:
    """
    /new 25 write report   -> task due in 25 minutes
    /new write report      -> task due in the default duration
    """
    if not args:
        return "Usage: /new [minutes] <name>"

    minutes = _parse_positive_int(args[0])
    name_parts = args[1:] if minutes is not None else args
    try:
        task = state.engine.create_task(" ".join(name_parts), minutes=minutes)
    except TaskValidationError as e:
        return f"Task rejected: {e}."
    return f"Task {task.id} created: {display_name(task.name)}"


def cmd_quick(state: AppState, args: list[str]) -> str:
    """
    /quick             -> list presets
    /quick 15 name     -> rapid entry with a preset duration
    """
    presets = list(getattr(state.settings, "quick_presets", []) or [])
    if not args:
        return "Quick presets (minutes): " + ", ".join(str(p) for p in presets)

    minutes = _parse_positive_int(args[0])
    if minutes is None or minutes not in presets:
        return "Unknown preset. Use /quick to list presets."
    try:
        task = state.engine.add_quick_task(" ".join(args[1:]), minutes)
    except TaskValidationError as e:
        return f"Task rejected: {e}."
    return f"Task {task.id} created ({minutes} min): {display_name(task.name)}"


def cmd_list(state: AppState, args: list[str]) -> str:
    return format_board(state.engine.snapshot())


def cmd_done(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /done <task id>"
    task_id = resolve_task_id(state.engine, args[0])
    if task_id is None or not state.engine.complete(task_id):
        return f"No active task {args[0]}."
    return f"Task {task_id} completed. Streak: {state.engine.counters.streak}"


def cmd_del(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /del <task id>"
    task_id = resolve_task_id(state.engine, args[0])
    if task_id is None or not state.engine.delete(task_id):
        return f"No active task {args[0]}."
    return f"Task {task_id} moved to the graveyard."


def cmd_grave(state: AppState, args: list[str]) -> str:
    return format_graveyard(state.engine.snapshot())


def cmd_hold(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """Start the hold-to-resurrect confirmation."""
    if not args:
        return "Usage: /hold <grave id>"
    grave_id = resolve_grave_id(state.engine, args[0])
    if grave_id is None or not state.engine.begin_resurrect(grave_id):
        return f"No grave entry {args[0]}."
    hold = getattr(state.settings, "hold_duration_seconds", 3.0)
    if emit:
        with contextlib.suppress(Exception):
            emit(f"[HOLD] Resurrecting {grave_id} in {hold:g}s...")
    return f"Holding {grave_id}. Use /release {grave_id} to cancel."


def cmd_release(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /release <grave id>"
    grave_id = resolve_grave_id(state.engine, args[0]) or args[0]
    if not state.engine.cancel_resurrect(grave_id):
        return f"No hold in progress for {args[0]}."
    return f"Hold released for {grave_id}."


def cmd_purge(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /purge <grave id>"
    grave_id = resolve_grave_id(state.engine, args[0])
    if grave_id is None or not state.engine.permanently_delete(grave_id):
        return f"No grave entry {args[0]}."
    logger.debug("Permanent delete requested id=%s", grave_id)
    return f"Grave entry {grave_id} deleted for good."


def cmd_stats(state: AppState, args: list[str]) -> str:
    return format_stats(state.engine.snapshot())


def cmd_clear(state: AppState, args: list[str]) -> str:
    if not args or args[0].lower() != "yes":
        return "This deletes all tasks, the graveyard and stats. Confirm with /clear yes."
    logger.info("Clear-all confirmed from the console.")
    state.engine.clear_all()
    return "All data cleared."


def cmd_events(state: AppState, args: list[str]) -> str:
    """/events [n]: the most recent lifecycle events, oldest first."""
    limit = _parse_positive_int(args[0]) if args else 10
    if limit is None:
        return "Usage: /events [count]"
    recent = state.engine.bus.list_recent(limit=limit)
    if not recent:
        return "No events yet."
    return "\n".join(["Recent events:", *("  " + describe_event(e) for e in recent)])


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show storage and timing settings.")
registry.register("new", cmd_new, help_text="Create a task: /new [minutes] <name>.", aliases=["add"])
registry.register("quick", cmd_quick, help_text="Rapid entry: /quick <preset> <name>.", aliases=["q"])
registry.register("list", cmd_list, help_text="Active tasks, soonest deadline first.", aliases=["ls"])
registry.register("done", cmd_done, help_text="Complete a task: /done <id>.")
registry.register("del", cmd_del, help_text="Delete a task (goes to the graveyard): /del <id>.")
registry.register("grave", cmd_grave, help_text="Show the graveyard (24h recovery).")
registry.register("hold", cmd_hold, help_text="Hold to resurrect a grave entry: /hold <id>.")
registry.register("release", cmd_release, help_text="Cancel a pending hold: /release <id>.")
registry.register("purge", cmd_purge, help_text="Delete a grave entry permanently: /purge <id>.")
registry.register("stats", cmd_stats, help_text="Streak, completed, expired, success rate.")
registry.register("events", cmd_events, help_text="Recent lifecycle events: /events [count].")
registry.register("clear", cmd_clear, help_text="Delete all data: /clear yes.")
