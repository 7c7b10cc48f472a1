"""Ranking session models."""

from datetime import UTC, datetime
from uuid import uuid4

from pydantic import BaseModel, Field, computed_field


class Session(BaseModel):
    """Bookkeeping for one run of the battle sequencer."""

    session_id: str = Field(default_factory=lambda: uuid4().hex)
    context: str
    total_battles: int = Field(ge=0, description="Queue length when the session was created")
    completed_battles: int = Field(default=0, ge=0, description="Won or tied matchups")
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def progress(self) -> float:
        """Fraction of queued battles that were judged (skips excluded)."""
        if self.total_battles <= 0:
            return 0.0
        return self.completed_battles / self.total_battles
