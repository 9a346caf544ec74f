# tests/fakes.py

from __future__ import annotations

from collections.abc import Iterable

from now_or_never.core.errors import PersistenceError
from now_or_never.core.events import EngineEvent, EventType
from now_or_never.storage.snapshot_store import InMemorySnapshotStore
from now_or_never.tasks.task_models import Counters, GraveEntry, StateSnapshot, Task


class FakeClock:
    """Synthetic time source; tests move it explicitly."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.current = float(start)

    def now(self) -> float:
        return self.current

    def advance(self, seconds: float) -> float:
        self.current += seconds
        return self.current

    def set(self, value: float) -> float:
        self.current = float(value)
        return self.current


class RecordingListener:
    """Captures every engine event for assertions."""

    def __init__(self) -> None:
        self.events: list[EngineEvent] = []

    def __call__(self, event: EngineEvent) -> None:
        self.events.append(event)

    def types(self) -> list[EventType]:
        return [e.event_type for e in self.events]

    def of_type(self, event_type: EventType) -> list[EngineEvent]:
        return [e for e in self.events if e.event_type == event_type]

    def clear(self) -> None:
        self.events.clear()


class CountingSnapshotStore(InMemorySnapshotStore):
    """In-memory repo that counts saves."""

    def __init__(self, initial: StateSnapshot | None = None) -> None:
        super().__init__()
        if initial is not None:
            self._snapshot = initial
        self.saves = 0

    def save_snapshot(
        self,
        tasks: Iterable[Task],
        graveyard: Iterable[GraveEntry],
        counters: Counters,
    ) -> None:
        self.saves += 1
        super().save_snapshot(tasks, graveyard, counters)


class FailingSnapshotRepo:
    """Repo whose storage is full / broken."""

    def __init__(self, *, fail_load: bool = False, fail_save: bool = True) -> None:
        self.fail_load = fail_load
        self.fail_save = fail_save
        self.save_attempts = 0

    def load_snapshot(self) -> StateSnapshot:
        if self.fail_load:
            raise PersistenceError("load", OSError("unreadable"))
        return StateSnapshot()

    def save_snapshot(self, tasks, graveyard, counters) -> None:
        self.save_attempts += 1
        if self.fail_save:
            raise OSError("database or disk is full")

    def clear(self) -> None:
        raise OSError("read-only storage")
