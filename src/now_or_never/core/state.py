# src/now_or_never/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from ..tasks.engine import LifecycleEngine
from .ports import Clock, SnapshotRepo


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: object

    clock: Clock
    repo: SnapshotRepo
    engine: LifecycleEngine

    # False when the database could not be opened and we run memory-only.
    persistent: bool = True
