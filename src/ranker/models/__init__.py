"""Pydantic models for the ranker."""

from ranker.models.elo import (
    BothLiked,
    ContextStatistics,
    Matchup,
    Outcome,
    RatingRecord,
    Skipped,
    WinnerSelected,
)
from ranker.models.item import ItemType, RankableItem, RankingContext
from ranker.models.session import Session

__all__ = [
    "BothLiked",
    "ContextStatistics",
    "ItemType",
    "Matchup",
    "Outcome",
    "RankableItem",
    "RankingContext",
    "RatingRecord",
    "Session",
    "Skipped",
    "WinnerSelected",
]
