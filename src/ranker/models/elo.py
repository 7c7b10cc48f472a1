"""Elo rating and matchup models."""

from datetime import UTC, datetime
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field

from ranker.models.item import ItemType, RankableItem
from ranker.scoring.elo import (
    DEFAULT_ELO_RATING,
    MAX_RATING,
    MIN_RATING,
    confidence_for,
    k_factor_for,
)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class RatingRecord(BaseModel):
    """Rating and battle tally for one item within one context."""

    context: str
    item_id: str
    item_type: ItemType | None = None
    rating: float = Field(default=DEFAULT_ELO_RATING, ge=MIN_RATING, le=MAX_RATING)
    battles: int = Field(default=0, ge=0)
    wins: int = Field(default=0, ge=0)
    losses: int = Field(default=0, ge=0)
    ties: int = Field(default=0, ge=0)
    last_updated: datetime = Field(default_factory=_utcnow)
    created_at: datetime = Field(default_factory=_utcnow)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def k_factor(self) -> int:
        """Update sensitivity; higher while the item is provisional."""
        return k_factor_for(self.battles)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def win_rate(self) -> float:
        if self.battles == 0:
            return 0.0
        return self.wins / self.battles

    @computed_field  # type: ignore[prop-decorator]
    @property
    def confidence(self) -> float:
        return confidence_for(self.battles)


class Matchup(BaseModel):
    """Two items waiting for a judged outcome."""

    model_config = ConfigDict(frozen=True)

    item_a: RankableItem
    item_b: RankableItem
    context: str

    @property
    def key(self) -> frozenset[str]:
        """Unordered identity of the pair."""
        return frozenset((self.item_a.item_id, self.item_b.item_id))

    def involves(self, item_id: str) -> bool:
        return item_id in (self.item_a.item_id, self.item_b.item_id)

    def opponent_of(self, item_id: str) -> RankableItem:
        """Return the other participant.

        Raises:
            ValueError: If the item is not part of this matchup
        """
        if item_id == self.item_a.item_id:
            return self.item_b
        if item_id == self.item_b.item_id:
            return self.item_a
        msg = f"Item {item_id} is not part of this matchup"
        raise ValueError(msg)


class WinnerSelected(BaseModel):
    """The judge preferred one side."""

    kind: Literal["winner"] = "winner"
    winner_id: str


class BothLiked(BaseModel):
    """The judge liked both equally; scored as a draw."""

    kind: Literal["both_liked"] = "both_liked"


class Skipped(BaseModel):
    """The judge passed on the matchup; ratings are untouched."""

    kind: Literal["skipped"] = "skipped"


Outcome = Annotated[WinnerSelected | BothLiked | Skipped, Field(discriminator="kind")]


class ContextStatistics(BaseModel):
    """Aggregate numbers for one context."""

    item_count: int
    total_battles: int
    average_rating: float
