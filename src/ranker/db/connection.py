"""SQLite connections for the rating and session repositories."""

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from ranker.config import get_settings


def get_db_path() -> Path:
    """Resolve the configured database file, creating its directory."""
    db_path = get_settings().db_path
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return db_path


@contextmanager
def get_connection() -> Iterator[sqlite3.Connection]:
    """Open a short-lived connection; rows come back as ``sqlite3.Row``.

    A writer holding the lock for longer than ``db_timeout`` surfaces as
    ``sqlite3.OperationalError`` ("database is locked").
    """
    conn = sqlite3.connect(get_db_path(), timeout=get_settings().db_timeout)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    try:
        yield conn
    finally:
        conn.close()
