# tasks/graveyard.py

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from .task_models import GraveEntry

logger = logging.getLogger(__name__)

RETENTION_SECONDS = 24 * 3600.0


def is_evictable(entry: GraveEntry, now: float) -> bool:
    return now - entry.expired_at >= RETENTION_SECONDS


def remaining_retention(entry: GraveEntry, now: float) -> float:
    """Display only. Eviction decisions always go through is_evictable()."""
    return max(0.0, RETENTION_SECONDS - (now - entry.expired_at))


class GraveyardStore:
    """
    Time-boxed holding area for migrated tasks.

    Entries live for RETENTION_SECONDS after their migration and are evicted by
    sweep(). Eviction is silent and final.
    """

    def __init__(self, entries: Iterable[GraveEntry] = ()) -> None:
        self._entries: dict[str, GraveEntry] = {}
        for e in entries:
            self._entries[e.id] = e

    def __contains__(self, grave_id: object) -> bool:
        return grave_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[GraveEntry]:
        return iter(list(self._entries.values()))

    def get(self, grave_id: str) -> GraveEntry | None:
        return self._entries.get(grave_id)

    def all(self) -> list[GraveEntry]:
        return list(self._entries.values())

    def insert(self, entry: GraveEntry) -> None:
        if entry.id in self._entries:
            logger.debug("Graveyard overwrite id=%s", entry.id)
        self._entries[entry.id] = entry

    def sweep(self, now: float) -> list[GraveEntry]:
        """Remove and return every entry whose retention window has elapsed."""
        evicted = [e for e in self._entries.values() if is_evictable(e, now)]
        for e in evicted:
            del self._entries[e.id]
        return evicted

    def pop(self, grave_id: str) -> GraveEntry | None:
        return self._entries.pop(grave_id, None)

    def permanently_delete(self, grave_id: str) -> GraveEntry | None:
        """Immediate removal that bypasses the TTL. Idempotent."""
        entry = self.pop(grave_id)
        if entry is not None:
            logger.debug("Graveyard permanent delete id=%s", grave_id)
        return entry

    def clear(self) -> None:
        self._entries.clear()
