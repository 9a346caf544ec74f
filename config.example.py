# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "NON_APP_NAME": "App display name (default: now-or-never).",
    "NON_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    # Front end
    "NON_CONSOLE_ENABLED": "Run the interactive console (true/false, default: true).",
    # Paths (gitignored)
    "NON_DATA_DIR": "Local data directory (default: .local/now_or_never).",
    "NON_STATE_DB_PATH": "Snapshot SQLite path (default: <data_dir>/state.sqlite3).",
    # Engine timing
    "NON_TICK_INTERVAL_SECONDS": "Tick period (default: 1.0).",
    "NON_SETTLE_DELAY_SECONDS": "Delay between a deadline lapsing and the graveyard move (default: 0.3).",
    "NON_HOLD_DURATION_SECONDS": "Hold time needed to resurrect a grave entry (default: 3.0).",
    # Task creation
    "NON_DEFAULT_MINUTES": "Duration for /new without minutes (default: 60).",
    "NON_QUICK_PRESETS": "Comma/space separated preset durations in minutes (default: 5 15 30 60 120).",
}
