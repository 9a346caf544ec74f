# src/now_or_never/core/events.py

"""In-process event bus between the lifecycle engine and its observers."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

logger = logging.getLogger(__name__)


class EventType(StrEnum):
    TASK_CREATED = "task_created"
    TASK_COMPLETED = "task_completed"
    TASK_EXPIRING = "task_expiring"
    TASK_MIGRATED = "task_migrated"
    URGENCY_CHANGED = "urgency_changed"
    GRAVE_EVICTED = "grave_evicted"
    GRAVE_RESURRECTED = "grave_resurrected"
    GRAVE_DELETED = "grave_deleted"
    RESURRECT_ARMED = "resurrect_armed"
    RESURRECT_CANCELLED = "resurrect_cancelled"
    PERSISTENCE_FAILED = "persistence_failed"
    DATA_CLEARED = "data_cleared"


@dataclass(frozen=True, slots=True)
class EngineEvent:
    """
    One state change, fired exactly once.

    - subject_id: the task / grave id the change is about (None for global events)
    - record: the new or removed record where one exists (Task, GraveEntry)
    - detail: short machine-friendly extra (cause, urgency state, error text)
    """

    event_id: int
    event_type: EventType
    timestamp: float
    subject_id: str | None = None
    record: Any = None
    detail: str = ""


EngineListener = Callable[[EngineEvent], None]


class EventBus:
    """Synchronous fan-out to listeners with a bounded history."""

    def __init__(self, *, history_limit: int = 256) -> None:
        self._events: deque[EngineEvent] = deque(maxlen=history_limit)
        self._listeners: dict[int, EngineListener] = {}
        self._next_event_id = 1
        self._next_listener_id = 1

    def subscribe(self, listener: EngineListener) -> int:
        listener_id = self._next_listener_id
        self._next_listener_id += 1
        self._listeners[listener_id] = listener
        return listener_id

    def unsubscribe(self, listener_id: int) -> None:
        self._listeners.pop(listener_id, None)

    def publish(
        self,
        event_type: EventType,
        *,
        timestamp: float,
        subject_id: str | None = None,
        record: Any = None,
        detail: str = "",
    ) -> EngineEvent:
        event = EngineEvent(
            event_id=self._next_event_id,
            event_type=event_type,
            timestamp=timestamp,
            subject_id=subject_id,
            record=record,
            detail=detail,
        )
        self._next_event_id += 1
        self._events.append(event)

        for listener_id, listener in list(self._listeners.items()):
            try:
                listener(event)
            except Exception:
                # A broken observer must not stop the engine or the other observers.
                logger.exception(
                    "Event listener %s failed on %s", listener_id, event.event_type.value
                )
        return event

    def list_recent(self, *, limit: int = 50) -> list[EngineEvent]:
        if limit <= 0:
            return []
        return list(self._events)[-limit:]


def describe_event(event: EngineEvent) -> str:
    """Compact one-line form, shared by the event log file and /events."""
    parts = [f"#{event.event_id}", event.event_type.value, f"t={event.timestamp:.3f}"]
    if event.subject_id:
        parts.append(f"id={event.subject_id}")
    if event.detail:
        parts.append(f"detail={event.detail}")
    return " ".join(parts)
