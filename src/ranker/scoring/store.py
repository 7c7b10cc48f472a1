"""In-memory rating store backed by the rating repository.

The cache is the source of truth for the running process. Every mutation is
applied in memory first and then written through; a failed write is raised
to the caller but leaves the cached ratings as they are.

One store is shared by every request thread, so cache access goes through a
re-entrant lock.
"""

import logging
import threading
from datetime import UTC, datetime

from ranker.db.repository import RatingRepository
from ranker.errors import PersistenceError
from ranker.models.elo import ContextStatistics, RatingRecord
from ranker.models.item import ItemType
from ranker.scoring.elo import (
    DEFAULT_ELO_RATING,
    LOSS_SCORE,
    TIE_SCORE,
    WIN_SCORE,
    calculate_elo_update,
    calculate_expected_score,
)

logger = logging.getLogger(__name__)

RatingKey = tuple[str, str]


class RatingStore:
    """Owns every RatingRecord and is the only thing that changes ratings."""

    def __init__(self, repository: RatingRepository) -> None:
        self._repository = repository
        self._lock = threading.RLock()
        # Insertion order doubles as creation order for stable rankings
        self._ratings: dict[RatingKey, RatingRecord] = {}
        # Contexts whose stored rows survived a failed delete and must not be read back
        self._stale_contexts: set[str] = set()
        self._all_stale = False
        self._load()

    def _load(self) -> None:
        try:
            records = self._repository.fetch_all()
        except PersistenceError as e:
            logger.warning("Starting with an empty rating cache: %s", e)
            return
        for record in records:
            self._ratings[(record.context, record.item_id)] = record
        logger.info("Loaded %d ratings", len(records))

    def get_rating(
        self, context: str, item_id: str, item_type: ItemType | None = None
    ) -> RatingRecord:
        """Get the rating for an item, creating a default one on first sight.

        Never raises: storage failures fall back to the in-memory record.
        """
        key = (context, item_id)
        with self._lock:
            record = self._ratings.get(key)
            if record is not None:
                return record

            if not self._is_stale(context):
                try:
                    record = self._repository.fetch_rating(context, item_id)
                except PersistenceError as e:
                    logger.warning(
                        "Could not look up rating for %s in %s: %s", item_id, context, e
                    )

            if record is None:
                record = RatingRecord(context=context, item_id=item_id, item_type=item_type)
                try:
                    # Also overwrites a stale row left behind by a failed reset
                    self._repository.upsert_rating(record)
                except PersistenceError as e:
                    logger.warning(
                        "New rating for %s in %s kept in memory only: %s", item_id, context, e
                    )

            self._ratings[key] = record
            return record

    def expected_score(self, rating_a: float, rating_b: float) -> float:
        return calculate_expected_score(rating_a, rating_b)

    def apply_win(
        self, winner_id: str, loser_id: str, context: str
    ) -> tuple[RatingRecord, RatingRecord]:
        """Record that ``winner_id`` beat ``loser_id``.

        Returns:
            Tuple of (winner_record, loser_record) after the update

        Raises:
            PersistenceError: If the updated records could not be stored
        """
        with self._lock:
            winner = self.get_rating(context, winner_id)
            loser = self.get_rating(context, loser_id)
            before = (winner.rating, loser.rating)

            winner.rating, loser.rating = calculate_elo_update(
                winner.rating, loser.rating, WIN_SCORE, winner.k_factor, loser.k_factor
            )
            self._tally(winner, WIN_SCORE)
            self._tally(loser, LOSS_SCORE)

            logger.debug(
                "%s beat %s in %s: %.1f → %.1f, %.1f → %.1f",
                winner_id,
                loser_id,
                context,
                before[0],
                winner.rating,
                before[1],
                loser.rating,
            )
            self._persist(winner, loser)
            return winner, loser

    def apply_tie(
        self, item_a_id: str, item_b_id: str, context: str
    ) -> tuple[RatingRecord, RatingRecord]:
        """Record a draw between two items.

        Raises:
            PersistenceError: If the updated records could not be stored
        """
        with self._lock:
            item_a = self.get_rating(context, item_a_id)
            item_b = self.get_rating(context, item_b_id)

            item_a.rating, item_b.rating = calculate_elo_update(
                item_a.rating, item_b.rating, TIE_SCORE, item_a.k_factor, item_b.k_factor
            )
            self._tally(item_a, TIE_SCORE)
            self._tally(item_b, TIE_SCORE)

            logger.debug("%s tied %s in %s", item_a_id, item_b_id, context)
            self._persist(item_a, item_b)
            return item_a, item_b

    def rankings(self, context: str, limit: int | None = None) -> list[RatingRecord]:
        """Ratings for a context, highest first; equal ratings keep creation order."""
        with self._lock:
            records = [r for (ctx, _), r in self._ratings.items() if ctx == context]
        records.sort(key=lambda r: r.rating, reverse=True)
        if limit is not None:
            return records[:limit]
        return records

    def top_rated(self, context: str, count: int = 10) -> list[RatingRecord]:
        return self.rankings(context, limit=count)

    def reset_context(self, context: str) -> None:
        """Forget every rating in a context.

        The context starts over at the default rating even when storage
        could not be cleared.

        Raises:
            PersistenceError: If the stored rows could not be deleted
        """
        with self._lock:
            for key in [k for k in self._ratings if k[0] == context]:
                del self._ratings[key]
            try:
                deleted = self._repository.delete_ratings(context)
            except PersistenceError:
                self._stale_contexts.add(context)
                raise
            self._stale_contexts.discard(context)
        logger.info("Reset context %s (%d ratings deleted)", context, deleted)

    def delete_all(self) -> None:
        """Forget every rating and session.

        Raises:
            PersistenceError: If the stored rows could not be deleted
        """
        with self._lock:
            self._ratings.clear()
            try:
                self._repository.delete_all()
            except PersistenceError:
                self._all_stale = True
                raise
            self._all_stale = False
            self._stale_contexts.clear()
        logger.info("Deleted all ratings and sessions")

    def context_statistics(self, context: str) -> ContextStatistics:
        records = self.rankings(context)
        if not records:
            return ContextStatistics(
                item_count=0, total_battles=0, average_rating=DEFAULT_ELO_RATING
            )
        return ContextStatistics(
            item_count=len(records),
            total_battles=sum(r.battles for r in records),
            average_rating=sum(r.rating for r in records) / len(records),
        )

    def _is_stale(self, context: str) -> bool:
        return self._all_stale or context in self._stale_contexts

    def _tally(self, record: RatingRecord, score: float) -> None:
        record.battles += 1
        if score == WIN_SCORE:
            record.wins += 1
        elif score == LOSS_SCORE:
            record.losses += 1
        else:
            record.ties += 1
        record.last_updated = datetime.now(UTC)

    def _persist(self, *records: RatingRecord) -> None:
        # Write every record even if an earlier one fails, then report the first failure
        failure: PersistenceError | None = None
        for record in records:
            try:
                self._repository.upsert_rating(record)
            except PersistenceError as e:
                failure = failure or e
        if failure is not None:
            raise failure
