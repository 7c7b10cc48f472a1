"""pytest configuration and shared fixtures."""

import random
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from unittest.mock import patch

import pytest

from ranker.db.repository import RatingRepository, SessionRepository
from ranker.models.item import ItemType, RankableItem
from ranker.scoring.sequencer import BattleSequencer
from ranker.scoring.store import RatingStore


@pytest.fixture(autouse=True)
def use_test_database() -> Iterator[sqlite3.Connection]:
    """Use an isolated in-memory database for all tests.

    This fixture runs automatically for all tests to ensure they
    don't affect the real database.
    """
    from ranker.db.migrate import SCHEMA

    test_conn = sqlite3.connect(":memory:", check_same_thread=False)
    test_conn.row_factory = sqlite3.Row
    test_conn.executescript(SCHEMA)
    test_conn.commit()

    @contextmanager
    def mock_get_connection() -> Iterator[sqlite3.Connection]:
        """Return the test connection as a context manager."""
        yield test_conn

    # Patch in all modules that import get_connection
    with (
        patch("ranker.db.connection.get_connection", mock_get_connection),
        patch("ranker.db.repository.get_connection", mock_get_connection),
        patch("ranker.db.migrate.get_connection", mock_get_connection),
    ):
        yield test_conn

    test_conn.close()


@pytest.fixture
def broken_storage() -> Iterator[None]:
    """Make every repository call fail as if the database were locked."""

    @contextmanager
    def failing_get_connection() -> Iterator[sqlite3.Connection]:
        raise sqlite3.OperationalError("database is locked")
        yield  # pragma: no cover

    with patch("ranker.db.repository.get_connection", failing_get_connection):
        yield


@pytest.fixture
def rating_repo() -> RatingRepository:
    return RatingRepository()


@pytest.fixture
def session_repo() -> SessionRepository:
    return SessionRepository()


@pytest.fixture
def store(rating_repo: RatingRepository) -> RatingStore:
    return RatingStore(rating_repo)


@pytest.fixture
def sequencer(store: RatingStore, session_repo: SessionRepository) -> BattleSequencer:
    return BattleSequencer(store, session_repo, rng=random.Random(1234))


def make_items(count: int, item_type: ItemType = ItemType.SONG) -> list[RankableItem]:
    """Build ``count`` distinct items with ids item-00, item-01, ..."""
    return [
        RankableItem(
            item_id=f"item-{i:02d}",
            title=f"Track {i}",
            artist="Test Artist",
            item_type=item_type,
        )
        for i in range(count)
    ]
