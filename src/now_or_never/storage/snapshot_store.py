# storage/snapshot_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any, TypeVar

from ..core.errors import MalformedStateError, PersistenceError
from ..tasks.task_models import Counters, GraveEntry, StateSnapshot, Task

logger = logging.getLogger(__name__)

_COUNTER_KEYS = ("completed_count", "expired_count", "streak")

T = TypeVar("T")


class SqliteSnapshotStore:
    """
    SQLite snapshot store.

    The whole engine state is small, so every save rewrites it in a single
    transaction. The schema is migration-safe:
    - create tables if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Columns are untyped. Every row is validated on the way out and bad rows
    are dropped one by one.

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "state.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("SnapshotStore ready db=%s", self._db_path)

    @property
    def db_path(self) -> Path:
        return self._db_path

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    pos INTEGER PRIMARY KEY,
                    id,
                    name,
                    deadline,
                    created
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS graveyard (
                    pos INTEGER PRIMARY KEY,
                    id,
                    name,
                    deadline,
                    created,
                    expired_at
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS counters (
                    key TEXT PRIMARY KEY,
                    value
                )
                """
            )

            def add_missing(table: str, names: Iterable[str]) -> None:
                cur.execute(f"PRAGMA table_info({table})")
                cols = {row["name"] for row in cur.fetchall()}
                for name in names:
                    if name in cols:
                        continue
                    cur.execute(f"ALTER TABLE {table} ADD COLUMN {name}")
                    logger.info("SnapshotStore migration: added column %s.%s", table, name)

            add_missing("tasks", ("id", "name", "deadline", "created"))
            add_missing("graveyard", ("id", "name", "deadline", "created", "expired_at"))

            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _decode_rows(
        rows: Iterable[sqlite3.Row],
        decode: Callable[[dict[str, Any]], T],
        kind: str,
    ) -> list[T]:
        out: list[T] = []
        seen: set[Any] = set()
        for row in rows:
            record = dict(row)
            try:
                item = decode(record)
            except MalformedStateError as exc:
                logger.warning("Dropping malformed %s row pos=%s: %s", kind, record.get("pos"), exc)
                continue
            item_id = getattr(item, "id", None)
            if item_id in seen:
                logger.warning("Dropping duplicate %s row id=%s", kind, item_id)
                continue
            seen.add(item_id)
            out.append(item)
        return out

    @staticmethod
    def _decode_counter(raw: Any) -> int:
        if isinstance(raw, bool) or not isinstance(raw, int) or raw < 0:
            return 0
        return raw

    # ---- public API ----

    def load_snapshot(self) -> StateSnapshot:
        try:
            conn = self._get_conn()
            try:
                cur = conn.cursor()
                cur.execute("SELECT * FROM tasks ORDER BY pos ASC")
                tasks = self._decode_rows(cur.fetchall(), Task.from_record, "task")

                cur.execute("SELECT * FROM graveyard ORDER BY pos ASC")
                graves = self._decode_rows(cur.fetchall(), GraveEntry.from_record, "grave")

                cur.execute("SELECT key, value FROM counters")
                raw_counters = {row["key"]: row["value"] for row in cur.fetchall()}
            finally:
                conn.close()
        except sqlite3.Error as exc:
            raise PersistenceError("load", exc) from exc

        counters = Counters(**{k: self._decode_counter(raw_counters.get(k)) for k in _COUNTER_KEYS})
        logger.debug(
            "Snapshot loaded tasks=%d graveyard=%d counters=%s", len(tasks), len(graves), counters
        )
        return StateSnapshot(tasks=tasks, graveyard=graves, counters=counters)

    def save_snapshot(
        self,
        tasks: Iterable[Task],
        graveyard: Iterable[GraveEntry],
        counters: Counters,
    ) -> None:
        try:
            conn = self._get_conn()
            try:
                with conn:
                    conn.execute("DELETE FROM tasks")
                    conn.executemany(
                        "INSERT INTO tasks(id, name, deadline, created) VALUES (?, ?, ?, ?)",
                        [(t.id, t.name, t.deadline, t.created) for t in tasks],
                    )
                    conn.execute("DELETE FROM graveyard")
                    conn.executemany(
                        "INSERT INTO graveyard(id, name, deadline, created, expired_at) "
                        "VALUES (?, ?, ?, ?, ?)",
                        [(g.id, g.name, g.deadline, g.created, g.expired_at) for g in graveyard],
                    )
                    conn.executemany(
                        "INSERT OR REPLACE INTO counters(key, value) VALUES (?, ?)",
                        [(k, int(getattr(counters, k))) for k in _COUNTER_KEYS],
                    )
            finally:
                conn.close()
        except sqlite3.Error as exc:
            # "database or disk is full" lands here as OperationalError.
            raise PersistenceError("save", exc) from exc

    def clear(self) -> None:
        try:
            conn = self._get_conn()
            try:
                with conn:
                    conn.execute("DELETE FROM tasks")
                    conn.execute("DELETE FROM graveyard")
                    conn.execute("DELETE FROM counters")
            finally:
                conn.close()
        except sqlite3.Error as exc:
            raise PersistenceError("clear", exc) from exc
        logger.info("SnapshotStore cleared db=%s", self._db_path)


class InMemorySnapshotStore:
    """Memory-only fallback when the database cannot be opened."""

    def __init__(self) -> None:
        self._snapshot = StateSnapshot()

    def load_snapshot(self) -> StateSnapshot:
        s = self._snapshot
        return StateSnapshot(tasks=list(s.tasks), graveyard=list(s.graveyard), counters=s.counters.copy())

    def save_snapshot(
        self,
        tasks: Iterable[Task],
        graveyard: Iterable[GraveEntry],
        counters: Counters,
    ) -> None:
        self._snapshot = StateSnapshot(tasks=list(tasks), graveyard=list(graveyard), counters=counters.copy())

    def clear(self) -> None:
        self._snapshot = StateSnapshot()
