# tests/test_config.py

from __future__ import annotations

from pathlib import Path

import pytest

from now_or_never.config import Settings


def test_defaults_when_env_is_empty(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in (
        "NON_DATA_DIR",
        "NON_STATE_DB_PATH",
        "NON_SETTLE_DELAY_SECONDS",
        "NON_HOLD_DURATION_SECONDS",
        "NON_QUICK_PRESETS",
        "NON_DEFAULT_MINUTES",
    ):
        monkeypatch.delenv(key, raising=False)

    s = Settings.from_env()
    assert s.settle_delay_seconds == 0.3
    assert s.hold_duration_seconds == 3.0
    assert s.default_minutes == 60
    assert s.quick_presets == [5, 15, 30, 60, 120]
    assert s.state_db_path == s.data_dir / "state.sqlite3"


def test_env_overrides_and_bad_values_fall_back(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("NON_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("NON_HOLD_DURATION_SECONDS", "1.5")
    monkeypatch.setenv("NON_SETTLE_DELAY_SECONDS", "nan")
    monkeypatch.setenv("NON_TICK_INTERVAL_SECONDS", "0")
    monkeypatch.setenv("NON_DEFAULT_MINUTES", "-3")
    monkeypatch.setenv("NON_QUICK_PRESETS", "10, x, 0, 45")
    monkeypatch.setenv("NON_CONSOLE_ENABLED", "off")

    s = Settings.from_env()
    assert s.data_dir == tmp_path
    assert s.state_db_path == tmp_path / "state.sqlite3"
    assert s.hold_duration_seconds == 1.5
    assert s.settle_delay_seconds == 0.3
    assert s.tick_interval_seconds == 1.0
    assert s.default_minutes == 60
    assert s.quick_presets == [10, 45]
    assert s.console_enabled is False


@pytest.mark.parametrize("raw", ["inf", "-inf", "1e999", "infinity"])
def test_non_finite_delays_are_rejected(monkeypatch: pytest.MonkeyPatch, raw: str) -> None:
    monkeypatch.setenv("NON_SETTLE_DELAY_SECONDS", raw)
    monkeypatch.setenv("NON_HOLD_DURATION_SECONDS", raw)
    monkeypatch.setenv("NON_TICK_INTERVAL_SECONDS", raw)

    s = Settings.from_env()
    assert s.settle_delay_seconds == 0.3
    assert s.hold_duration_seconds == 3.0
    assert s.tick_interval_seconds == 1.0
