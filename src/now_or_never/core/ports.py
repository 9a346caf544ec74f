# src/now_or_never/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the engine.

The engine depends on Protocols instead of concrete implementations.
This keeps the clock and the storage swappable and makes testing easier.
"""

from collections.abc import Iterable
from typing import Protocol

from ..tasks.task_models import Counters, GraveEntry, StateSnapshot, Task


class Clock(Protocol):
    """Current time in POSIX seconds. Tests inject a synthetic clock."""
    def now(self) -> float: ...


class SnapshotRepo(Protocol):
    """
    Persistence collaborator.

    load_snapshot must drop malformed records instead of failing the whole load.
    Both methods may raise PersistenceError; the engine keeps running either way.
    """

    def load_snapshot(self) -> StateSnapshot: ...

    def save_snapshot(
            self,
            tasks: Iterable[Task],
            graveyard: Iterable[GraveEntry],
            counters: Counters,
    ) -> None: ...

    def clear(self) -> None: ...
