# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from now_or_never.cli.bootstrap import create_initial_state
from now_or_never.core.state import AppState
from now_or_never.tasks.engine import LifecycleEngine

from .fakes import CountingSnapshotStore, FakeClock, RecordingListener


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the engine.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="now-or-never-test",
        log_level="DEBUG",
        console_enabled=False,
        data_dir=tmp_path,
        state_db_path=tmp_path / "state.sqlite3",
        tick_interval_seconds=1.0,
        settle_delay_seconds=0.3,
        hold_duration_seconds=3.0,
        default_minutes=60,
        quick_presets=[5, 15, 30, 60, 120],
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(1_000.0)


@pytest.fixture()
def repo() -> CountingSnapshotStore:
    return CountingSnapshotStore()


@pytest.fixture()
def listener() -> RecordingListener:
    return RecordingListener()


@pytest.fixture()
def engine(clock: FakeClock, repo: CountingSnapshotStore, listener: RecordingListener) -> LifecycleEngine:
    eng = LifecycleEngine(clock=clock, repo=repo)
    eng.bus.subscribe(listener)
    eng.init()
    return eng


@pytest.fixture()
def state(settings: SimpleNamespace, clock: FakeClock) -> AppState:
    """
    AppState wired like production, with a synthetic clock.

    NOTE: We keep the real SQLite snapshot store here because
    its correctness is part of what we want to test.
    """
    st = create_initial_state(settings=settings, clock=clock)
    st.engine.init()
    return st
