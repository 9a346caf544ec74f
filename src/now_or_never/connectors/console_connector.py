# src/now_or_never/connectors/console_connector.py

from __future__ import annotations

import logging
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.events import EngineEvent, EventType
from ..core.state import AppState
from ..tasks.task_api import display_name

logger = logging.getLogger(__name__)

_NOTICE_TEMPLATES = {
    EventType.TASK_MIGRATED: "[GONE] {name} ({id}) is in the graveyard.",
    EventType.GRAVE_EVICTED: "[EVICTED] {name} ({id}) is gone for good.",
    EventType.GRAVE_RESURRECTED: "[BACK] {name} is active again as {detail}.",
    EventType.PERSISTENCE_FAILED: "[STORAGE] Could not save state ({detail}). Running from memory.",
}


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


def format_notice(event: EngineEvent) -> str | None:
    """One-line user notice for the events worth interrupting the prompt for."""
    template = _NOTICE_TEMPLATES.get(event.event_type)
    if template is None:
        return None
    name = display_name(str(getattr(event.record, "name", "") or ""))
    return template.format(name=name, id=event.subject_id or "", detail=event.detail)


def _on_event(event: EngineEvent) -> None:
    notice = format_notice(event)
    if notice:
        _print_ts(notice)


def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started.")
    _print_ts("[CONSOLE] Type /help for commands. Use /exit to quit.\n")

    def emit(text: str) -> None:
        # Immediate user-visible feedback before the command returns.
        _print_ts(text)

    listener_id = state.engine.bus.subscribe(_on_event)
    try:
        while True:
            try:
                user_input = input(">>> ").strip()
            except EOFError:
                logger.info("Console EOF received, exiting.")
                break
            except KeyboardInterrupt:
                logger.info("Console KeyboardInterrupt, exiting.")
                print()
                break

            if not user_input:
                continue

            if user_input.lower() in ("/exit", "/quit"):
                logger.info("Console exit command received.")
                break

            if not user_input.startswith("/"):
                # Plain text is a shortcut for /new with the default duration.
                user_input = "/new " + user_input

            try:
                cmd_response = command_registry.handle(state, user_input, emit=emit)
            except Exception:
                logger.exception("Command handler crashed.")
                cmd_response = "Internal error while handling a command."

            if cmd_response is not None:
                _print_ts(cmd_response)
    finally:
        state.engine.bus.unsubscribe(listener_id)

    logger.info("Console connector finished.")
