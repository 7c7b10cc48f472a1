"""Battle queue construction and session bookkeeping.

Small item sets get every pair exactly once. Larger sets are paired by
closeness of current rating, capped per item, and topped up with random
pairs until each item averages a few battles.
"""

import logging
import random
from collections import deque
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from enum import Enum

from ranker.db.repository import SessionRepository
from ranker.errors import PersistenceError, PreconditionError
from ranker.models.elo import BothLiked, Matchup, Outcome, Skipped, WinnerSelected
from ranker.models.item import RankableItem
from ranker.models.session import Session
from ranker.scoring.store import RatingStore

logger = logging.getLogger(__name__)

# Up to this many items every pair is queued
EXHAUSTIVE_MAX_ITEMS = 10

# Rating-aware pairing limits
TARGET_BATTLES_PER_ITEM = 15
MAX_RATING_DIFFERENCE = 600.0

# Minimum queue length is this many battles per item
MIN_BATTLES_FACTOR = 3

# Random top-up gives up after this many draws per missing battle
RANDOM_ATTEMPTS_FACTOR = 10


class SequencerState(str, Enum):
    """Lifecycle of a battle sequencer."""

    IDLE = "idle"
    BUILDING = "building"
    ACTIVE = "active"
    COMPLETE = "complete"


Observer = Callable[["BattleSequencer"], None]


class BattleSequencer:
    """Queue of matchups for one ranking session.

    Calls must be serialized by the caller; a new ``setup`` discards whatever
    the previous run left behind.
    """

    def __init__(
        self,
        store: RatingStore,
        sessions: SessionRepository,
        rng: random.Random | None = None,
    ) -> None:
        self._store = store
        self._sessions = sessions
        self._rng = rng or random.Random()
        self._observers: list[Observer] = []
        self._reset()

    def _reset(self) -> None:
        self.state = SequencerState.IDLE
        self.context = ""
        self.items: list[RankableItem] = []
        self.session: Session | None = None
        self._queue: deque[Matchup] = deque()
        self._completed = 0
        self._skipped = 0

    # Observers

    def subscribe(self, callback: Observer) -> Callable[[], None]:
        """Call ``callback`` after every setup and recorded outcome.

        Returns:
            A function that removes the subscription
        """
        self._observers.append(callback)

        def unsubscribe() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return unsubscribe

    def _notify(self) -> None:
        for callback in list(self._observers):
            callback(self)

    # Session lifecycle

    def setup(self, items: Sequence[RankableItem], context: str) -> Session:
        """Build a fresh queue and session for ``items`` in ``context``.

        Raises:
            PreconditionError: If fewer than two items are given
        """
        if len(items) < 2:
            msg = f"Need at least 2 items to battle, got {len(items)}"
            raise PreconditionError(msg)

        self._reset()
        self.state = SequencerState.BUILDING
        self.context = context
        self.items = list(items)

        if len(self.items) <= EXHAUSTIVE_MAX_ITEMS:
            queue = self._exhaustive_pairs()
        else:
            queue = self._rating_aware_pairs()
        self._rng.shuffle(queue)
        self._queue = deque(queue)

        try:
            self.session = self._sessions.create_session(context, len(queue))
        except PersistenceError as e:
            logger.warning("Session for %s kept in memory only: %s", context, e)
            self.session = Session(context=context, total_battles=len(queue))

        self.state = SequencerState.ACTIVE
        logger.info(
            "Started session %s for %s: %d items, %d battles",
            self.session.session_id,
            context,
            len(self.items),
            len(queue),
        )
        self._notify()
        return self.session

    def current_matchup(self) -> Matchup | None:
        """The matchup waiting for a result, or None once the queue is drained."""
        if not self._queue:
            return None
        return self._queue[0]

    def record_outcome(self, outcome: Outcome) -> Matchup:
        """Apply a judged outcome to the current matchup and move on.

        Returns:
            The matchup that was consumed

        Raises:
            PreconditionError: If there is no current matchup, or the winner
                is not one of its participants
            PersistenceError: If ratings or session progress could not be
                stored; the queue has already advanced when this is raised
        """
        matchup = self.current_matchup()
        if matchup is None:
            raise PreconditionError("No matchup is waiting for a result")
        if isinstance(outcome, WinnerSelected) and not matchup.involves(outcome.winner_id):
            msg = f"Item {outcome.winner_id} is not part of the current matchup"
            raise PreconditionError(msg)

        self._queue.popleft()
        rating_failure: PersistenceError | None = None

        try:
            if isinstance(outcome, WinnerSelected):
                self._completed += 1
                loser = matchup.opponent_of(outcome.winner_id)
                self._store.apply_win(outcome.winner_id, loser.item_id, self.context)
            elif isinstance(outcome, BothLiked):
                self._completed += 1
                self._store.apply_tie(matchup.item_a.item_id, matchup.item_b.item_id, self.context)
            elif isinstance(outcome, Skipped):
                self._skipped += 1
        except PersistenceError as e:
            logger.warning("Rating update for %s not stored: %s", self.context, e)
            rating_failure = e

        progress_failure = self._save_progress()
        self._notify()

        failure = rating_failure or progress_failure
        if failure is not None:
            raise failure
        return matchup

    def _save_progress(self) -> PersistenceError | None:
        if self.session is None:
            return None
        self.session.completed_battles = self._completed
        if not self._queue:
            self.session.completed_at = datetime.now(UTC)
            self.state = SequencerState.COMPLETE
            logger.info(
                "Session %s complete: %d judged, %d skipped",
                self.session.session_id,
                self._completed,
                self._skipped,
            )
        try:
            self._sessions.update_session(self.session)
        except PersistenceError as e:
            logger.warning("Progress for session %s not stored: %s", self.session.session_id, e)
            return e
        return None

    # Queries

    def progress(self) -> float:
        """Judged battles over queued battles; skips never count."""
        if self.session is None:
            return 0.0
        return self.session.progress

    def is_complete(self) -> bool:
        return self.state == SequencerState.COMPLETE

    def completed_count(self) -> int:
        return self._completed

    def skipped_count(self) -> int:
        return self._skipped

    def battles_remaining(self) -> int:
        return len(self._queue)

    # Queue construction

    def _exhaustive_pairs(self) -> list[Matchup]:
        queue = []
        for i, item_a in enumerate(self.items):
            for item_b in self.items[i + 1 :]:
                queue.append(Matchup(item_a=item_a, item_b=item_b, context=self.context))
        return queue

    def _rating_aware_pairs(self) -> list[Matchup]:
        ratings = {
            item.item_id: self._store.get_rating(self.context, item.item_id, item.item_type).rating
            for item in self.items
        }
        # Snapshot order; not re-sorted as counts change during the pass
        ranked = sorted(self.items, key=lambda item: ratings[item.item_id], reverse=True)
        battles_per_item = dict.fromkeys(ratings, 0)
        queue: list[Matchup] = []

        for item in ranked:
            rating = ratings[item.item_id]
            quota = TARGET_BATTLES_PER_ITEM - battles_per_item[item.item_id]
            if quota <= 0:
                continue

            opponents = [
                other
                for other in ranked
                if other.item_id != item.item_id
                and battles_per_item[other.item_id] < TARGET_BATTLES_PER_ITEM
                and abs(rating - ratings[other.item_id]) <= MAX_RATING_DIFFERENCE
            ]
            opponents.sort(key=lambda other: abs(rating - ratings[other.item_id]))

            for opponent in opponents[:quota]:
                queue.append(Matchup(item_a=item, item_b=opponent, context=self.context))
                battles_per_item[item.item_id] += 1
                battles_per_item[opponent.item_id] += 1

        target = len(self.items) * MIN_BATTLES_FACTOR
        if len(queue) < target:
            self._add_random_pairs(queue, battles_per_item, target)
        return queue

    def _add_random_pairs(
        self, queue: list[Matchup], battles_per_item: dict[str, int], target: int
    ) -> None:
        seen = {matchup.key for matchup in queue}
        attempts = (target - len(queue)) * RANDOM_ATTEMPTS_FACTOR
        added = 0

        while len(queue) < target and attempts > 0:
            attempts -= 1
            item_a, item_b = self._rng.choice(self.items), self._rng.choice(self.items)
            if item_a.item_id == item_b.item_id:
                continue
            key = frozenset((item_a.item_id, item_b.item_id))
            if key in seen:
                continue
            if (
                battles_per_item[item_a.item_id] >= TARGET_BATTLES_PER_ITEM
                or battles_per_item[item_b.item_id] >= TARGET_BATTLES_PER_ITEM
            ):
                continue

            seen.add(key)
            queue.append(Matchup(item_a=item_a, item_b=item_b, context=self.context))
            battles_per_item[item_a.item_id] += 1
            battles_per_item[item_b.item_id] += 1
            added += 1

        logger.debug("Topped up %s with %d random battles", self.context, added)
