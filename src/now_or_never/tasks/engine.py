# tasks/engine.py

"""
Temporal lifecycle engine.

Owns the active task store, the graveyard and the counters, and moves tasks
between them:

    ACTIVE --(deadline <= now)--> EXPIRING --(settle delay)--> GRAVE
    ACTIVE --(manual delete)----------------------------------> GRAVE
    ACTIVE --(complete)--> gone (counted as success)
    GRAVE  --(24h TTL | permanent delete)--> gone
    GRAVE  --(hold confirmed)--> new ACTIVE task with the same duration

Time only enters through the injected clock or an explicit `now` argument.
Every public method takes the engine lock, so the tick driver thread and the
console thread never interleave mutations.
"""

from __future__ import annotations

import functools
import logging
import math
import threading
from typing import Any

from ..core.errors import PersistenceError, TaskValidationError
from ..core.events import EngineEvent, EventBus, EventType
from ..core.ports import Clock, SnapshotRepo
from .graveyard import GraveyardStore, is_evictable, remaining_retention
from .task_models import (
    Counters,
    EngineSnapshot,
    GraveEntry,
    GraveView,
    MigrationCause,
    StateSnapshot,
    Task,
    TaskView,
    UrgencyState,
    normalize_task_name,
)
from .task_store import ActiveTaskStore, new_task_id
from .timers import DeferredTimers, TimerKind
from .urgency import classify, progress_percent, remaining_seconds

logger = logging.getLogger(__name__)

DEFAULT_SETTLE_DELAY_SECONDS = 0.3
DEFAULT_HOLD_DURATION_SECONDS = 3.0
DEFAULT_MINUTES = 60


class LifecycleEngine:
    def __init__(
        self,
        *,
        clock: Clock,
        repo: SnapshotRepo | None = None,
        bus: EventBus | None = None,
        settle_delay_seconds: float = DEFAULT_SETTLE_DELAY_SECONDS,
        hold_duration_seconds: float = DEFAULT_HOLD_DURATION_SECONDS,
        default_minutes: int = DEFAULT_MINUTES,
    ) -> None:
        self._clock = clock
        self._repo = repo
        self._bus = bus or EventBus()
        self._settle_delay = _as_delay(settle_delay_seconds, DEFAULT_SETTLE_DELAY_SECONDS, "settle_delay_seconds")
        self._hold_duration = _as_delay(hold_duration_seconds, DEFAULT_HOLD_DURATION_SECONDS, "hold_duration_seconds")
        self._default_minutes = default_minutes

        self._lock = threading.RLock()
        self._active = ActiveTaskStore()
        self._graveyard = GraveyardStore()
        self._counters = Counters()
        self._timers = DeferredTimers()

        # Tasks whose migration has begun; the value is why.
        self._expiring: dict[str, MigrationCause] = {}
        # Urgency seen on the previous tick, only used to report changes.
        self._last_urgency: dict[str, UrgencyState] = {}

        self._dirty = False
        self._collected: list[EngineEvent] | None = None
        self._running = False

    @classmethod
    def from_settings(
        cls,
        settings: Any,
        *,
        clock: Clock,
        repo: SnapshotRepo | None = None,
        bus: EventBus | None = None,
    ) -> LifecycleEngine:
        return cls(
            clock=clock,
            repo=repo,
            bus=bus,
            settle_delay_seconds=getattr(settings, "settle_delay_seconds", DEFAULT_SETTLE_DELAY_SECONDS),
            hold_duration_seconds=getattr(settings, "hold_duration_seconds", DEFAULT_HOLD_DURATION_SECONDS),
            default_minutes=getattr(settings, "default_minutes", DEFAULT_MINUTES),
        )

    # ---- lifecycle ----

    @property
    def bus(self) -> EventBus:
        return self._bus

    @property
    def running(self) -> bool:
        return self._running

    def init(self) -> None:
        """Load persisted state. A failed load leaves the engine empty but usable."""
        with self._lock:
            snapshot = StateSnapshot()
            if self._repo is not None:
                try:
                    snapshot = self._repo.load_snapshot()
                except Exception as exc:
                    self._report_persistence_failure("load", exc)
                    snapshot = StateSnapshot()

            self._load(snapshot)
            self._running = True
            logger.info(
                "Engine ready tasks=%d graveyard=%d completed=%d expired=%d streak=%d",
                len(self._active),
                len(self._graveyard),
                self._counters.completed_count,
                self._counters.expired_count,
                self._counters.streak,
            )

    def shutdown(self) -> None:
        """
        Stop accepting deferred work and save.

        Pending holds are dropped. Migrations already under way are finished
        now, since a started migration always completes.
        """
        with self._lock:
            now = self._now(None)
            self._timers.cancel_all(TimerKind.HOLD)
            for task_id in self._timers.keys(TimerKind.SETTLE):
                self._timers.cancel(TimerKind.SETTLE, task_id)
                self._finish_migration(task_id, self._expiring.get(task_id, MigrationCause.EXPIRED), now)
            self._flush(force=True)
            self._running = False
            logger.info("Engine shut down.")

    # ---- tick ----

    def tick(self, now: float | None = None) -> list[EngineEvent]:
        """
        One scheduler pass, all steps against the same sampled `now`:

        1. graveyard TTL sweep
        2. deferred timers that came due (settle migrations, confirmed holds)
        3. expiration detection for active tasks
        4. urgency re-classification

        Returns the events published during this tick.
        """
        with self._lock:
            now = self._now(now)
            self._collected = []
            try:
                self._sweep(now)
                self._timers.run_due(now)
                for task in self._active.due(now):
                    # A listener may have completed or deleted it earlier in this pass.
                    if task.id in self._active and task.id not in self._expiring:
                        self._begin_migration(task, now, MigrationCause.EXPIRED)
                self._reclassify(now)
                self._flush()
                return self._collected
            finally:
                self._collected = None

    def run_pending(self, now: float | None = None) -> int:
        """Fire deferred timers that came due between ticks."""
        with self._lock:
            now = self._now(now)
            fired = self._timers.run_due(now)
            if fired:
                self._flush()
            return fired

    def next_timer_due(self) -> float | None:
        with self._lock:
            return self._timers.next_due()

    # ---- task operations ----

    def create_task(
        self,
        name: str,
        *,
        minutes: float | None = None,
        duration_seconds: float | None = None,
    ) -> Task:
        """
        Create a task due `minutes` (or `duration_seconds`) from now.

        Raises TaskValidationError for an empty name or a duration that is not
        a positive finite number; nothing is mutated in that case.
        """
        clean_name = normalize_task_name(name)
        if duration_seconds is None:
            if minutes is None:
                minutes = self._default_minutes
            duration_seconds = _as_positive(minutes, "minutes") * 60.0
        duration = _as_positive(duration_seconds, "duration_seconds")

        with self._lock:
            now = self._now(None)
            task = Task(
                id=new_task_id(now, self._id_taken),
                name=clean_name,
                deadline=now + duration,
                created=now,
            )
            self._admit(task, now, detail="created")
            self._flush()
            return task

    def add_quick_task(self, name: str, minutes: int) -> Task:
        """Rapid entry with a preset duration."""
        return self.create_task(name, minutes=minutes)

    def complete(self, task_id: str) -> bool:
        """
        Remove a task as a success. False if the id is not active.

        A task whose migration already began cannot be completed any more:
        the first mutation to reach it wins.
        """
        with self._lock:
            if task_id in self._expiring:
                logger.info("Complete ignored, task already migrating id=%s", task_id)
                return False
            task = self._active.remove(task_id)
            if task is None:
                return False
            now = self._now(None)
            self._last_urgency.pop(task_id, None)
            self._counters.record_completion()
            self._dirty = True
            logger.info("Task completed id=%s streak=%d", task_id, self._counters.streak)
            self._emit(EventType.TASK_COMPLETED, now, subject_id=task_id, record=task)
            self._flush()
            return True

    def delete(self, task_id: str) -> bool:
        """
        Manual delete. Goes through the same migration as a lapsed deadline
        (graveyard entry, expired_count + 1, streak reset) but without the
        settle delay.
        """
        with self._lock:
            if task_id in self._expiring or task_id not in self._active:
                return False
            now = self._now(None)
            self._finish_migration(task_id, MigrationCause.DELETED, now)
            self._flush()
            return True

    def is_expiring(self, task_id: str) -> bool:
        with self._lock:
            return task_id in self._expiring

    # ---- graveyard operations ----

    def permanently_delete(self, grave_id: str) -> bool:
        with self._lock:
            self._timers.cancel(TimerKind.HOLD, grave_id)
            entry = self._graveyard.permanently_delete(grave_id)
            if entry is None:
                return False
            now = self._now(None)
            self._dirty = True
            logger.info("Grave entry permanently deleted id=%s", grave_id)
            self._emit(EventType.GRAVE_DELETED, now, subject_id=grave_id, record=entry)
            self._flush()
            return True

    def begin_resurrect(self, grave_id: str) -> bool:
        """
        Start the hold-to-confirm gesture for a grave entry.

        Restarting a hold for the same id replaces the pending one. Returns
        False when there is nothing (left) to resurrect.
        """
        with self._lock:
            now = self._now(None)
            entry = self._graveyard.get(grave_id)
            if entry is None or is_evictable(entry, now):
                return False
            due_at = now + self._hold_duration
            self._timers.schedule(
                TimerKind.HOLD,
                grave_id,
                due_at,
                functools.partial(self._confirm_resurrect, grave_id),
            )
            self._emit(EventType.RESURRECT_ARMED, now, subject_id=grave_id, detail=f"{due_at:.3f}")
            if self._hold_duration <= 0:
                self._timers.run_due(now)
                self._flush()
            return True

    def cancel_resurrect(self, grave_id: str) -> bool:
        """Release the hold before it fires. No state change besides the timer."""
        with self._lock:
            if not self._timers.cancel(TimerKind.HOLD, grave_id):
                return False
            self._emit(EventType.RESURRECT_CANCELLED, self._now(None), subject_id=grave_id)
            return True

    def resurrect_pending(self, grave_id: str) -> bool:
        with self._lock:
            return self._timers.pending(TimerKind.HOLD, grave_id) is not None

    # ---- queries ----

    def get_task(self, task_id: str) -> Task | None:
        with self._lock:
            return self._active.get(task_id)

    def get_grave(self, grave_id: str) -> GraveEntry | None:
        with self._lock:
            return self._graveyard.get(grave_id)

    def tasks(self, now: float | None = None) -> list[Task]:
        with self._lock:
            return self._active.ordered_by_remaining(self._now(now))

    def graves(self) -> list[GraveEntry]:
        with self._lock:
            return self._graveyard.all()

    @property
    def counters(self) -> Counters:
        with self._lock:
            return self._counters.copy()

    def snapshot(self, now: float | None = None) -> EngineSnapshot:
        with self._lock:
            now = self._now(now)
            task_views = [
                TaskView(
                    task=t,
                    urgency=classify(t.deadline, now),
                    remaining=remaining_seconds(t.deadline, now),
                    progress=progress_percent(t.deadline, t.created, now),
                    expiring=t.id in self._expiring,
                )
                for t in self._active.ordered_by_remaining(now)
            ]
            grave_views = [
                GraveView(
                    entry=g,
                    remaining_retention=remaining_retention(g, now),
                    resurrect_pending=self._timers.pending(TimerKind.HOLD, g.id) is not None,
                )
                for g in self._graveyard.all()
            ]
            c = self._counters
            return EngineSnapshot(
                now=now,
                tasks=task_views,
                graveyard=grave_views,
                completed_count=c.completed_count,
                expired_count=c.expired_count,
                streak=c.streak,
                success_rate=c.success_rate,
                success_percent=c.success_percent,
            )

    # ---- maintenance ----

    def clear_all(self) -> None:
        """Wipe tasks, graveyard, counters, pending timers and persisted state."""
        with self._lock:
            self._timers.cancel_all()
            self._expiring.clear()
            self._last_urgency.clear()
            self._active.clear()
            self._graveyard.clear()
            self._counters = Counters()
            self._dirty = False
            if self._repo is not None:
                try:
                    self._repo.clear()
                except Exception as exc:
                    self._report_persistence_failure("clear", exc)
            logger.info("All data cleared.")
            self._emit(EventType.DATA_CLEARED, self._now(None))

    # ---- internals ----

    def _now(self, now: float | None) -> float:
        return float(now) if now is not None else float(self._clock.now())

    def _id_taken(self, task_id: str) -> bool:
        return task_id in self._active or task_id in self._graveyard

    def _emit(self, event_type: EventType, now: float, **kwargs: Any) -> EngineEvent:
        event = self._bus.publish(event_type, timestamp=now, **kwargs)
        if self._collected is not None:
            self._collected.append(event)
        return event

    def _load(self, snapshot: StateSnapshot) -> None:
        self._active = ActiveTaskStore(snapshot.tasks)
        graves: list[GraveEntry] = []
        for g in snapshot.graveyard:
            if g.id in self._active:
                logger.warning("Dropping grave entry id=%s: id is also active", g.id)
                continue
            graves.append(g)
        self._graveyard = GraveyardStore(graves)
        self._counters = snapshot.counters.copy()
        self._expiring.clear()
        self._last_urgency.clear()
        self._timers.cancel_all()

    def _admit(self, task: Task, now: float, *, detail: str) -> None:
        self._active.add(task)
        self._last_urgency[task.id] = classify(task.deadline, now)
        self._dirty = True
        logger.info("Task %s id=%s name=%r deadline=%.3f", detail, task.id, task.name, task.deadline)
        self._emit(EventType.TASK_CREATED, now, subject_id=task.id, record=task, detail=detail)

    def _begin_migration(self, task: Task, now: float, cause: MigrationCause) -> None:
        self._expiring[task.id] = cause
        due_at = now + self._settle_delay
        self._emit(EventType.TASK_EXPIRING, now, subject_id=task.id, record=task, detail=f"{due_at:.3f}")
        if self._settle_delay <= 0:
            self._finish_migration(task.id, cause, now)
            return
        self._timers.schedule(
            TimerKind.SETTLE,
            task.id,
            due_at,
            functools.partial(self._finish_migration, task.id, cause),
        )

    def _finish_migration(self, task_id: str, cause: MigrationCause, now: float) -> GraveEntry | None:
        """Atomic ACTIVE -> GRAVE move. No-op if the task is already gone."""
        self._expiring.pop(task_id, None)
        task = self._active.remove(task_id)
        if task is None:
            logger.debug("Migration skipped, task no longer active id=%s", task_id)
            return None

        entry = GraveEntry.from_task(task, expired_at=now)
        self._graveyard.insert(entry)
        self._last_urgency.pop(task_id, None)
        self._counters.record_expiration()
        self._dirty = True
        logger.info("Task migrated to graveyard id=%s cause=%s", task_id, cause.value)
        self._emit(EventType.TASK_MIGRATED, now, subject_id=task_id, record=entry, detail=cause.value)
        return entry

    def _sweep(self, now: float) -> None:
        for entry in self._graveyard.sweep(now):
            # Eviction wins over a hold that would fire in the same tick.
            self._timers.cancel(TimerKind.HOLD, entry.id)
            self._dirty = True
            logger.info("Grave entry evicted id=%s", entry.id)
            self._emit(EventType.GRAVE_EVICTED, now, subject_id=entry.id, record=entry)

    def _confirm_resurrect(self, grave_id: str, now: float) -> Task | None:
        entry = self._graveyard.get(grave_id)
        if entry is None:
            logger.debug("Resurrect skipped, grave entry gone id=%s", grave_id)
            return None
        if is_evictable(entry, now):
            # The sweep has not run yet for this instant; the TTL still decides.
            self._graveyard.pop(grave_id)
            self._dirty = True
            logger.info("Grave entry evicted id=%s (resurrect too late)", grave_id)
            self._emit(EventType.GRAVE_EVICTED, now, subject_id=grave_id, record=entry)
            return None

        # Only the relative duration survives, never the absolute deadline.
        task = Task(
            id=new_task_id(now, self._id_taken),
            name=entry.name,
            deadline=now + entry.original_duration,
            created=now,
        )
        self._graveyard.pop(grave_id)
        self._emit(EventType.GRAVE_RESURRECTED, now, subject_id=grave_id, record=task, detail=task.id)
        self._admit(task, now, detail="resurrected")
        return task

    def _reclassify(self, now: float) -> None:
        for task in self._active:
            state = classify(task.deadline, now)
            previous = self._last_urgency.get(task.id)
            if previous is state:
                continue
            self._last_urgency[task.id] = state
            if previous is not None:
                self._emit(
                    EventType.URGENCY_CHANGED, now, subject_id=task.id, record=task, detail=state.value
                )

    def _flush(self, *, force: bool = False) -> None:
        """Best-effort save after a mutation. Failures are reported, never raised."""
        if not (self._dirty or force):
            return
        self._dirty = False
        if self._repo is None:
            return
        try:
            self._repo.save_snapshot(self._active.all(), self._graveyard.all(), self._counters.copy())
        except Exception as exc:
            self._report_persistence_failure("save", exc)

    def _report_persistence_failure(self, operation: str, exc: BaseException) -> None:
        err = exc if isinstance(exc, PersistenceError) else PersistenceError(operation, exc)
        logger.warning("Persistence %s failed; continuing in memory.", operation, exc_info=exc)
        self._emit(EventType.PERSISTENCE_FAILED, self._now(None), detail=str(err))


def _as_positive(value: Any, field: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TaskValidationError(f"{field} must be a number")
    num = float(value)
    if not math.isfinite(num) or num <= 0:
        raise TaskValidationError(f"{field} must be positive")
    return num



def _as_delay(value: Any, default: float, field: str) -> float:
    """Delays must be finite so a started migration or hold always fires."""
    try:
        num = float(value)
    except (TypeError, ValueError):
        num = math.nan
    if not math.isfinite(num):
        logger.warning("Ignoring non-finite %s=%r, using %.1fs", field, value, default)
        return default
    return max(0.0, num)
