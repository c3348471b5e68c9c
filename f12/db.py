from __future__ import annotations

import os
import sqlite3
from datetime import datetime, timezone
from typing import Any

from .settings import settings


_db_path: str | None = None


def set_db_path(path: str | None) -> None:
    """Point the event log somewhere other than the configured default."""
    global _db_path
    _db_path = path


def utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _resolve_db_path() -> str:
    """Return a file path usable by sqlite.

    A bind-mounted path that did not exist is created by Docker as a
    directory, so if the configured path is a directory the event log
    is placed inside it.
    """
    p = os.path.abspath(_db_path or settings.db_path)
    if os.path.isdir(p):
        p = os.path.join(p, "f12.db")

    parent = os.path.dirname(p)
    if parent and not os.path.exists(parent):
        os.makedirs(parent, exist_ok=True)
    return p


def connect() -> sqlite3.Connection:
    conn = sqlite3.connect(_resolve_db_path(), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


def init_db() -> None:
    """Create the event log if it does not exist."""
    with connect() as conn:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS events (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              ts TEXT NOT NULL,
              level TEXT NOT NULL,
              task TEXT,
              message TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_events_ts ON events(ts);
            """
        )


def log_event(level: str, message: str, task: str | None = None) -> None:
    with connect() as conn:
        conn.execute(
            "INSERT INTO events (ts, level, task, message) VALUES (?, ?, ?, ?)",
            (utc_now(), level.upper(), task, message),
        )


def latest_events(limit: int = 100, task: str | None = None) -> list[dict[str, Any]]:
    with connect() as conn:
        if task:
            rows = conn.execute(
                "SELECT * FROM events WHERE task=? ORDER BY id DESC LIMIT ?", (task, limit)
            ).fetchall()
        else:
            rows = conn.execute("SELECT * FROM events ORDER BY id DESC LIMIT ?", (limit,)).fetchall()
        return [dict(r) for r in rows]
