"""Database module for the ranker."""

from ranker.db.connection import get_connection
from ranker.db.repository import RatingRepository, SessionRepository

__all__ = ["RatingRepository", "SessionRepository", "get_connection"]
