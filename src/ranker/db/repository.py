"""Repository for database operations."""

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime

from ranker.db.connection import get_connection
from ranker.errors import PersistenceError
from ranker.models.elo import RatingRecord
from ranker.models.item import ItemType
from ranker.models.session import Session

logger = logging.getLogger(__name__)


@contextmanager
def _storage_errors(operation: str) -> Iterator[None]:
    """Log sqlite failures and re-raise them as PersistenceError."""
    try:
        yield
    except sqlite3.Error as e:
        logger.error("Storage operation %s failed: %s", operation, e)
        raise PersistenceError(operation, e) from e


class RatingRepository:
    """Repository for Elo rating rows, keyed by (context, item_id)."""

    def fetch_rating(self, context: str, item_id: str) -> RatingRecord | None:
        """Get the stored rating for an item, or None if it was never rated."""
        with _storage_errors("fetch_rating"), get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM elo_ratings WHERE context = ? AND item_id = ?",
                (context, item_id),
            ).fetchone()
            if row:
                return self._row_to_rating(row)
            return None

    def upsert_rating(self, record: RatingRecord) -> None:
        """Insert a rating or overwrite the stored counters for it.

        The row id is kept on update so creation order survives.
        """
        with _storage_errors("upsert_rating"), get_connection() as conn:
            conn.execute(
                """
                INSERT INTO elo_ratings (
                    context, item_id, item_type, rating, battles, wins, losses, ties,
                    last_updated, created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT (context, item_id) DO UPDATE SET
                    item_type = COALESCE(excluded.item_type, elo_ratings.item_type),
                    rating = excluded.rating,
                    battles = excluded.battles,
                    wins = excluded.wins,
                    losses = excluded.losses,
                    ties = excluded.ties,
                    last_updated = excluded.last_updated
                """,
                (
                    record.context,
                    record.item_id,
                    record.item_type.value if record.item_type else None,
                    record.rating,
                    record.battles,
                    record.wins,
                    record.losses,
                    record.ties,
                    record.last_updated.isoformat(),
                    record.created_at.isoformat(),
                ),
            )
            conn.commit()

    def fetch_ratings(self, context: str, limit: int | None = None) -> list[RatingRecord]:
        """Get ratings for a context, highest first, ties in creation order."""
        with _storage_errors("fetch_ratings"), get_connection() as conn:
            if limit is None:
                rows = conn.execute(
                    """
                    SELECT * FROM elo_ratings
                    WHERE context = ?
                    ORDER BY rating DESC, id ASC
                    """,
                    (context,),
                ).fetchall()
            else:
                rows = conn.execute(
                    """
                    SELECT * FROM elo_ratings
                    WHERE context = ?
                    ORDER BY rating DESC, id ASC
                    LIMIT ?
                    """,
                    (context, limit),
                ).fetchall()
            return [self._row_to_rating(row) for row in rows]

    def fetch_all(self) -> list[RatingRecord]:
        """Get every stored rating in creation order."""
        with _storage_errors("fetch_all"), get_connection() as conn:
            rows = conn.execute("SELECT * FROM elo_ratings ORDER BY id ASC").fetchall()
            return [self._row_to_rating(row) for row in rows]

    def delete_ratings(self, context: str) -> int:
        """Delete all ratings for a context and return how many were removed."""
        with _storage_errors("delete_ratings"), get_connection() as conn:
            cursor = conn.execute("DELETE FROM elo_ratings WHERE context = ?", (context,))
            conn.commit()
            return cursor.rowcount

    def delete_all(self) -> None:
        """Delete every rating and every session."""
        with _storage_errors("delete_all"), get_connection() as conn:
            conn.execute("DELETE FROM elo_ratings")
            conn.execute("DELETE FROM ranking_sessions")
            conn.commit()

    def _row_to_rating(self, row: sqlite3.Row) -> RatingRecord:
        """Convert a database row to a RatingRecord."""
        return RatingRecord(
            context=row["context"],
            item_id=row["item_id"],
            item_type=ItemType(row["item_type"]) if row["item_type"] else None,
            rating=row["rating"],
            battles=row["battles"],
            wins=row["wins"],
            losses=row["losses"],
            ties=row["ties"],
            last_updated=datetime.fromisoformat(row["last_updated"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )


class SessionRepository:
    """Repository for ranking session bookkeeping."""

    def create_session(self, context: str, total_battles: int) -> Session:
        """Create and store a new session for a freshly built queue."""
        session = Session(context=context, total_battles=total_battles)
        with _storage_errors("create_session"), get_connection() as conn:
            conn.execute(
                """
                INSERT INTO ranking_sessions (
                    session_id, context, total_battles, completed_battles, created_at
                )
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    session.session_id,
                    session.context,
                    session.total_battles,
                    session.completed_battles,
                    session.created_at.isoformat(),
                ),
            )
            conn.commit()
        return session

    def update_session(self, session: Session) -> None:
        """Store progress and completion time, inserting the row if it is missing."""
        with _storage_errors("update_session"), get_connection() as conn:
            conn.execute(
                """
                INSERT INTO ranking_sessions (
                    session_id, context, total_battles, completed_battles,
                    created_at, completed_at
                )
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT (session_id) DO UPDATE SET
                    completed_battles = excluded.completed_battles,
                    completed_at = excluded.completed_at
                """,
                (
                    session.session_id,
                    session.context,
                    session.total_battles,
                    session.completed_battles,
                    session.created_at.isoformat(),
                    session.completed_at.isoformat() if session.completed_at else None,
                ),
            )
            conn.commit()

    def get_session(self, session_id: str) -> Session | None:
        with _storage_errors("get_session"), get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM ranking_sessions WHERE session_id = ?",
                (session_id,),
            ).fetchone()
            if row:
                return self._row_to_session(row)
            return None

    def get_latest(self, context: str) -> Session | None:
        """Get the most recent session for a context (the one that superseded the rest)."""
        with _storage_errors("get_latest"), get_connection() as conn:
            row = conn.execute(
                """
                SELECT * FROM ranking_sessions
                WHERE context = ?
                ORDER BY created_at DESC, rowid DESC
                LIMIT 1
                """,
                (context,),
            ).fetchone()
            if row:
                return self._row_to_session(row)
            return None

    def _row_to_session(self, row: sqlite3.Row) -> Session:
        """Convert a database row to a Session."""
        return Session(
            session_id=row["session_id"],
            context=row["context"],
            total_battles=row["total_battles"],
            completed_battles=row["completed_battles"],
            created_at=datetime.fromisoformat(row["created_at"]),
            completed_at=(
                datetime.fromisoformat(row["completed_at"]) if row["completed_at"] else None
            ),
        )
