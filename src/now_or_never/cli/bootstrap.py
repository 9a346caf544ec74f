# src/now_or_never/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the clock, the snapshot store and the engine into AppState.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.clock import SystemClock
from ..core.events import EventBus
from ..core.ports import Clock, SnapshotRepo
from ..core.state import AppState
from ..storage.snapshot_store import InMemorySnapshotStore, SqliteSnapshotStore
from ..tasks.engine import LifecycleEngine

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.state_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None, clock: Clock | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings(). The engine is built but not initialized;
    call state.engine.init() to load the persisted snapshot.
    """
    if settings is None:
        settings = get_settings()
    if clock is None:
        clock = SystemClock()

    repo: SnapshotRepo
    persistent = True
    try:
        _ensure_local_dirs(settings)
        repo = SqliteSnapshotStore(settings.state_db_path)
    except Exception:
        # Keep the app usable without storage; state lives until exit.
        logger.exception("Snapshot store unavailable at %s; running memory-only.", settings.state_db_path)
        repo = InMemorySnapshotStore()
        persistent = False

    engine = LifecycleEngine.from_settings(settings, clock=clock, repo=repo, bus=EventBus())

    return AppState(
        settings=settings,
        clock=clock,
        repo=repo,
        engine=engine,
        persistent=persistent,
    )
