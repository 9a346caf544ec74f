# src/now_or_never/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- Every value has a working default, nothing is required at import time.
- Malformed values fall back to defaults instead of crashing startup.
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "NON"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


# Real environment variables always win over the local .env file.
load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float, *, minimum: float = 0.0) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    if not math.isfinite(value) or value < minimum:
        return default
    return value


def _env_int_list(name: str, default: list[int]) -> list[int]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    out: list[int] = []
    for part in raw.replace(",", " ").split():
        try:
            n = int(part)
        except ValueError:
            continue
        if n > 0:
            out.append(n)
    return out or list(default)


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Front end ----
    console_enabled: bool

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    state_db_path: Path

    # ---- Engine timing ----
    tick_interval_seconds: float
    settle_delay_seconds: float
    hold_duration_seconds: float

    # ---- Task creation ----
    default_minutes: int
    quick_presets: list[int]

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "now-or-never").strip() or "now-or-never"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/now_or_never"))
        state_db_path = _env_path(_k("STATE_DB_PATH"), data_dir / "state.sqlite3")

        # A zero tick interval would spin the driver; keep a sane floor.
        tick_interval_seconds = _env_float(_k("TICK_INTERVAL_SECONDS"), 1.0, minimum=0.05)
        settle_delay_seconds = _env_float(_k("SETTLE_DELAY_SECONDS"), 0.3)
        hold_duration_seconds = _env_float(_k("HOLD_DURATION_SECONDS"), 3.0)

        default_minutes = _env_int(_k("DEFAULT_MINUTES"), 60)
        if default_minutes <= 0:
            default_minutes = 60
        quick_presets = _env_int_list(_k("QUICK_PRESETS"), [5, 15, 30, 60, 120])

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            data_dir=data_dir,
            state_db_path=state_db_path,
            tick_interval_seconds=tick_interval_seconds,
            settle_delay_seconds=settle_delay_seconds,
            hold_duration_seconds=hold_duration_seconds,
            default_minutes=default_minutes,
            quick_presets=quick_presets,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
