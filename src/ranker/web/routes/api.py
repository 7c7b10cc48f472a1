"""API routes for running ranking sessions.

Context keys are opaque and may contain ``:``, so they are taken as path
parameters rather than parsed.
"""

import logging
import threading
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, Field

from ranker.db.repository import SessionRepository
from ranker.errors import PersistenceError, PreconditionError
from ranker.models.elo import ContextStatistics, Matchup, Outcome, RatingRecord
from ranker.models.item import RankableItem, RankingContext
from ranker.models.session import Session
from ranker.scoring.sequencer import BattleSequencer, SequencerState
from ranker.scoring.store import RatingStore

router = APIRouter(tags=["api"])
logger = logging.getLogger(__name__)


class SequencerRegistry:
    """One sequencer per context, all sharing the process-wide store."""

    def __init__(self, store: RatingStore, sessions: SessionRepository) -> None:
        self._store = store
        self._sessions = sessions
        self._sequencers: dict[str, BattleSequencer] = {}
        self.lock = threading.Lock()

    def get(self, context: str) -> BattleSequencer | None:
        return self._sequencers.get(context)

    def new_sequencer(self) -> BattleSequencer:
        return BattleSequencer(self._store, self._sessions)

    def register(self, context: str, sequencer: BattleSequencer) -> None:
        self._sequencers[context] = sequencer


def get_store(request: Request) -> RatingStore:
    store: RatingStore = request.app.state.store
    return store


def get_registry(request: Request) -> SequencerRegistry:
    registry: SequencerRegistry = request.app.state.sequencers
    return registry


StoreDep = Annotated[RatingStore, Depends(get_store)]
RegistryDep = Annotated[SequencerRegistry, Depends(get_registry)]


class BattleSetupRequest(BaseModel):
    """Request body for starting a session."""

    context: str = Field(min_length=1)
    items: list[RankableItem]


class OutcomeSubmission(BaseModel):
    """Request body for judging the current matchup."""

    outcome: Outcome


class ContextKind(BaseModel):
    """A ratings scope and the shape of its context keys."""

    kind: RankingContext
    display_name: str
    key_template: str


class BattleStateResponse(BaseModel):
    """Snapshot of a sequencer for the presentation layer."""

    context: str
    state: SequencerState
    session: Session | None
    current: Matchup | None
    progress: float
    completed: int
    skipped: int
    remaining: int


def _snapshot(sequencer: BattleSequencer) -> BattleStateResponse:
    return BattleStateResponse(
        context=sequencer.context,
        state=sequencer.state,
        session=sequencer.session,
        current=sequencer.current_matchup(),
        progress=sequencer.progress(),
        completed=sequencer.completed_count(),
        skipped=sequencer.skipped_count(),
        remaining=sequencer.battles_remaining(),
    )


@router.post("/battles", response_model=BattleStateResponse)
def start_battles(body: BattleSetupRequest, registry: RegistryDep) -> BattleStateResponse:
    """Build a new battle queue, superseding any session for the context."""
    with registry.lock:
        # A rejected setup leaves the context without a sequencer
        sequencer = registry.get(body.context) or registry.new_sequencer()
        try:
            sequencer.setup(body.items, body.context)
        except PreconditionError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
        registry.register(body.context, sequencer)
        return _snapshot(sequencer)


@router.post("/battles/{context:path}/outcome", response_model=BattleStateResponse)
def submit_outcome(
    context: str, body: OutcomeSubmission, registry: RegistryDep
) -> BattleStateResponse:
    """Judge the current matchup and advance to the next one."""
    with registry.lock:
        sequencer = registry.get(context)
        if sequencer is None:
            raise HTTPException(status_code=404, detail=f"No battles for {context}")
        if sequencer.current_matchup() is None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT, detail="No matchup is waiting for a result"
            )
        try:
            sequencer.record_outcome(body.outcome)
        except PreconditionError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
        except PersistenceError as e:
            logger.error("Outcome for %s recorded in memory only: %s", context, e)
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=f"Outcome applied but not saved: {e}",
            ) from e
        return _snapshot(sequencer)


@router.get("/battles/{context:path}", response_model=BattleStateResponse)
def get_battles(context: str, registry: RegistryDep) -> BattleStateResponse:
    """Current matchup and progress for a context."""
    with registry.lock:
        sequencer = registry.get(context)
        if sequencer is None:
            raise HTTPException(status_code=404, detail=f"No battles for {context}")
        return _snapshot(sequencer)


@router.get("/rankings/{context:path}", response_model=list[RatingRecord])
def get_rankings(
    context: str,
    store: StoreDep,
    limit: Annotated[int | None, Query(ge=1)] = None,
) -> list[RatingRecord]:
    """Ratings for a context, highest first."""
    return store.rankings(context, limit=limit)


@router.delete("/rankings/{context:path}", status_code=status.HTTP_204_NO_CONTENT)
def reset_rankings(context: str, store: StoreDep) -> None:
    """Forget every rating in a context."""
    try:
        store.reset_context(context)
    except PersistenceError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Ratings cleared in memory but not in storage: {e}",
        ) from e


@router.get("/contexts", response_model=list[ContextKind])
def list_context_kinds() -> list[ContextKind]:
    """Scopes ratings can be partitioned by, with the key each one expects."""
    return [
        ContextKind(
            kind=kind,
            display_name=kind.display_name,
            key_template=kind.context_key("{scope_id}"),
        )
        for kind in RankingContext
    ]


@router.get("/contexts/{context:path}/stats", response_model=ContextStatistics)
def get_context_stats(context: str, store: StoreDep) -> ContextStatistics:
    """Item count, total battles and average rating for a context."""
    return store.context_statistics(context)
