# tasks/task_models.py

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from ..core.errors import MalformedStateError, TaskValidationError

MAX_TASK_NAME_LENGTH = 200


class UrgencyState(StrEnum):
    """
    Urgency of an active task, derived from remaining time only.

    Declared from calmest to most urgent; `rank` follows declaration order.
    """

    STABLE = "STABLE"
    ELEVATED = "ELEVATED"
    CRITICAL = "CRITICAL"
    TERMINAL = "TERMINAL"

    @property
    def rank(self) -> int:
        return list(UrgencyState).index(self)


class MigrationCause(StrEnum):
    EXPIRED = "expired"
    DELETED = "deleted"


def normalize_task_name(raw: Any) -> str:
    """Trim + truncate to MAX_TASK_NAME_LENGTH. Raises TaskValidationError if nothing is left."""
    if not isinstance(raw, str):
        raise TaskValidationError("task name must be a string")
    name = raw.strip()[:MAX_TASK_NAME_LENGTH]
    if not name:
        raise TaskValidationError("task name is required")
    return name


def _require_str(record: dict[str, Any], key: str) -> str:
    val = record.get(key)
    if not isinstance(val, str) or not val:
        raise MalformedStateError(f"field {key!r} must be a non-empty string")
    return val


def _require_ts(record: dict[str, Any], key: str) -> float:
    val = record.get(key)
    # bool is an int subclass; a stored True is not a timestamp.
    if isinstance(val, bool) or not isinstance(val, (int, float)) or not math.isfinite(val):
        raise MalformedStateError(f"field {key!r} must be a finite number")
    return float(val)


def _require_name(record: dict[str, Any]) -> str:
    raw = record.get("name")
    if not isinstance(raw, str):
        raise MalformedStateError("field 'name' must be a string")
    name = raw.strip()[:MAX_TASK_NAME_LENGTH]
    if not name:
        raise MalformedStateError("field 'name' is empty")
    return name


@dataclass(frozen=True, slots=True)
class Task:
    id: str
    name: str
    deadline: float
    created: float

    @property
    def duration(self) -> float:
        return self.deadline - self.created

    def to_record(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "deadline": self.deadline, "created": self.created}

    @classmethod
    def from_record(cls, record: Any) -> Task:
        if not isinstance(record, dict):
            raise MalformedStateError("task record must be a mapping")
        return cls(
            id=_require_str(record, "id"),
            name=_require_name(record),
            deadline=_require_ts(record, "deadline"),
            created=_require_ts(record, "created"),
        )


@dataclass(frozen=True, slots=True)
class GraveEntry:
    """
    A migrated task waiting out its retention window.

    expired_at is the moment of migration, not the original deadline.
    """

    id: str
    name: str
    deadline: float
    created: float
    expired_at: float

    @property
    def original_duration(self) -> float:
        return self.deadline - self.created

    @classmethod
    def from_task(cls, task: Task, *, expired_at: float) -> GraveEntry:
        return cls(
            id=task.id,
            name=task.name,
            deadline=task.deadline,
            created=task.created,
            expired_at=expired_at,
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "deadline": self.deadline,
            "created": self.created,
            "expired_at": self.expired_at,
        }

    @classmethod
    def from_record(cls, record: Any) -> GraveEntry:
        if not isinstance(record, dict):
            raise MalformedStateError("grave record must be a mapping")
        return cls(
            id=_require_str(record, "id"),
            name=_require_name(record),
            deadline=_require_ts(record, "deadline"),
            created=_require_ts(record, "created"),
            expired_at=_require_ts(record, "expired_at"),
        )


@dataclass(slots=True)
class Counters:
    completed_count: int = 0
    expired_count: int = 0
    # Consecutive completions since the last expiration (manual deletes count as expirations).
    streak: int = 0

    @property
    def success_rate(self) -> float:
        total = self.completed_count + self.expired_count
        if total == 0:
            return 0.0
        return self.completed_count / total

    @property
    def success_percent(self) -> int:
        return round(self.success_rate * 100)

    def record_completion(self) -> None:
        self.completed_count += 1
        self.streak += 1

    def record_expiration(self) -> None:
        self.expired_count += 1
        self.streak = 0

    def copy(self) -> Counters:
        return Counters(self.completed_count, self.expired_count, self.streak)


@dataclass(slots=True)
class StateSnapshot:
    """What the persistence collaborator hands back at startup."""

    tasks: list[Task] = field(default_factory=list)
    graveyard: list[GraveEntry] = field(default_factory=list)
    counters: Counters = field(default_factory=Counters)


@dataclass(frozen=True, slots=True)
class TaskView:
    task: Task
    urgency: UrgencyState
    remaining: float
    progress: float
    expiring: bool


@dataclass(frozen=True, slots=True)
class GraveView:
    entry: GraveEntry
    remaining_retention: float
    resurrect_pending: bool


@dataclass(frozen=True, slots=True)
class EngineSnapshot:
    """Read-only view handed to the rendering side."""

    now: float
    tasks: list[TaskView]
    graveyard: list[GraveView]
    completed_count: int
    expired_count: int
    streak: int
    success_rate: float
    success_percent: int
