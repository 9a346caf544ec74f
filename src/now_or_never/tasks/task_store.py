# tasks/task_store.py

from __future__ import annotations

import logging
import secrets
import string
from collections.abc import Callable, Iterable, Iterator

from ..core.errors import IdGenerationError
from .task_models import Task

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.digits + string.ascii_lowercase
_ID_SUFFIX_LEN = 4
_ID_MAX_ATTEMPTS = 16


def _base36(n: int) -> str:
    if n <= 0:
        return "0"
    out: list[str] = []
    while n:
        n, r = divmod(n, 36)
        out.append(_ID_ALPHABET[r])
    return "".join(reversed(out))


def new_task_id(now: float, taken: Callable[[str], bool]) -> str:
    """
    Time-based id (base-36 milliseconds) plus a short random suffix.

    `taken` reports ids already used by either store; on the rare collision we
    simply draw another suffix.
    """
    prefix = _base36(int(now * 1000))
    for _ in range(_ID_MAX_ATTEMPTS):
        suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_SUFFIX_LEN))
        candidate = prefix + suffix
        if not taken(candidate):
            return candidate
    raise IdGenerationError(f"no free task id after {_ID_MAX_ATTEMPTS} attempts")


class ActiveTaskStore:
    """
    In-memory set of live tasks keyed by id.

    Insertion order is preserved so that ordering by remaining time is stable:
    tasks sharing a deadline keep their relative order from tick to tick.
    Removal is total, tasks are never edited in place.
    """

    def __init__(self, tasks: Iterable[Task] = ()) -> None:
        self._tasks: dict[str, Task] = {}
        for t in tasks:
            self._tasks[t.id] = t

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    def __iter__(self) -> Iterator[Task]:
        return iter(list(self._tasks.values()))

    def get(self, task_id: str) -> Task | None:
        return self._tasks.get(task_id)

    def all(self) -> list[Task]:
        return list(self._tasks.values())

    def add(self, task: Task) -> None:
        if task.id in self._tasks:
            raise IdGenerationError(f"task id {task.id!r} already active")
        self._tasks[task.id] = task
        logger.debug("Active store add id=%s deadline=%s", task.id, task.deadline)

    def remove(self, task_id: str) -> Task | None:
        """Idempotent: returns the removed task, or None if it was not there."""
        return self._tasks.pop(task_id, None)

    def ordered_by_remaining(self, now: float) -> list[Task]:
        # sorted() is stable; the key is remaining time only.
        return sorted(self._tasks.values(), key=lambda t: t.deadline - now)

    def due(self, now: float) -> list[Task]:
        return [t for t in self._tasks.values() if t.deadline <= now]

    def clear(self) -> None:
        self._tasks.clear()
