# tasks/timers.py

"""
Deferred, cancellable callbacks keyed by (kind, id).

The engine never sleeps. It registers a callback with an absolute due time and
the owner of the clock (tick driver, or a test) calls run_due(now) to fire
whatever has come due. At most one timer exists per key; scheduling again
replaces the previous one.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

logger = logging.getLogger(__name__)

TimerCallback = Callable[[float], None]


class TimerKind(StrEnum):
    SETTLE = "settle"  # expiration settle delay, not cancellable by users
    HOLD = "hold"  # hold-to-resurrect confirmation


@dataclass(slots=True)
class TimerHandle:
    kind: TimerKind
    key: str
    due_at: float
    callback: TimerCallback
    seq: int
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


class DeferredTimers:
    def __init__(self) -> None:
        self._pending: dict[tuple[TimerKind, str], TimerHandle] = {}
        self._seq = itertools.count()

    def __len__(self) -> int:
        return len(self._pending)

    def schedule(self, kind: TimerKind, key: str, due_at: float, callback: TimerCallback) -> TimerHandle:
        previous = self._pending.pop((kind, key), None)
        if previous is not None:
            previous.cancel()
            logger.debug("Timer replaced kind=%s key=%s", kind.value, key)

        handle = TimerHandle(kind=kind, key=key, due_at=float(due_at), callback=callback, seq=next(self._seq))
        self._pending[(kind, key)] = handle
        logger.debug("Timer scheduled kind=%s key=%s due_at=%.3f", kind.value, key, handle.due_at)
        return handle

    def cancel(self, kind: TimerKind, key: str) -> bool:
        handle = self._pending.pop((kind, key), None)
        if handle is None:
            return False
        handle.cancel()
        logger.debug("Timer cancelled kind=%s key=%s", kind.value, key)
        return True

    def cancel_all(self, kind: TimerKind | None = None) -> int:
        doomed = [k for k in self._pending if kind is None or k[0] == kind]
        for k in doomed:
            self._pending.pop(k).cancel()
        return len(doomed)

    def pending(self, kind: TimerKind, key: str) -> TimerHandle | None:
        return self._pending.get((kind, key))

    def keys(self, kind: TimerKind) -> list[str]:
        return [key for (k, key) in self._pending if k == kind]

    def next_due(self) -> float | None:
        if not self._pending:
            return None
        return min(h.due_at for h in self._pending.values())

    def run_due(self, now: float) -> int:
        """
        Fire every timer with due_at <= now, earliest first (ties in scheduling order).

        A callback may schedule or cancel other timers; the pending set is
        re-read after each callback.
        """
        fired = 0
        while True:
            due = [h for h in self._pending.values() if h.due_at <= now]
            if not due:
                return fired
            handle = min(due, key=lambda h: (h.due_at, h.seq))
            del self._pending[(handle.kind, handle.key)]
            if handle.cancelled:
                continue
            fired += 1
            handle.callback(now)
