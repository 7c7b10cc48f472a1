"""Tests for Pydantic models."""

import pytest
from hypothesis import given
from hypothesis import strategies as st
from pydantic import TypeAdapter, ValidationError

from ranker.models.elo import (
    BothLiked,
    Matchup,
    Outcome,
    RatingRecord,
    Skipped,
    WinnerSelected,
)
from ranker.models.item import ItemType, RankableItem, RankingContext
from ranker.models.session import Session


def _item(item_id: str) -> RankableItem:
    return RankableItem(item_id=item_id, title=f"Song {item_id}", item_type=ItemType.SONG)


class TestRatingRecord:
    """Tests for RatingRecord defaults and derived values."""

    def test_defaults(self) -> None:
        record = RatingRecord(context="global_songs", item_id="42")
        assert record.rating == 1500.0
        assert (record.battles, record.wins, record.losses, record.ties) == (0, 0, 0, 0)
        assert record.k_factor == 32
        assert record.win_rate == 0.0
        assert record.confidence == 0.2

    def test_derived_values_follow_battles(self) -> None:
        record = RatingRecord(
            context="global_songs", item_id="42", battles=20, wins=15, losses=3, ties=2
        )
        assert record.k_factor == 16
        assert record.win_rate == pytest.approx(0.75)
        assert record.confidence == 0.7

    def test_rating_outside_band_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RatingRecord(context="c", item_id="1", rating=50.0)

    def test_dump_includes_derived_values(self) -> None:
        dumped = RatingRecord(context="c", item_id="1").model_dump()
        assert dumped["k_factor"] == 32
        assert dumped["confidence"] == 0.2

    @given(wins=st.integers(0, 100), losses=st.integers(0, 100), ties=st.integers(0, 100))
    def test_win_rate_is_a_fraction(self, wins: int, losses: int, ties: int) -> None:
        battles = wins + losses + ties
        record = RatingRecord(
            context="c", item_id="1", battles=battles, wins=wins, losses=losses, ties=ties
        )
        assert 0.0 <= record.win_rate <= 1.0


class TestSession:
    """Tests for Session progress."""

    def test_fresh_session(self) -> None:
        session = Session(context="album_songs:7", total_battles=6)
        assert session.completed_battles == 0
        assert session.progress == 0.0
        assert len(session.session_id) == 32

    def test_empty_session_progress_is_zero(self) -> None:
        assert Session(context="c", total_battles=0).progress == 0.0

    def test_progress_fraction(self) -> None:
        session = Session(context="c", total_battles=4, completed_battles=3)
        assert session.progress == pytest.approx(0.75)

    def test_session_ids_are_unique(self) -> None:
        assert Session(context="c", total_battles=1).session_id != Session(
            context="c", total_battles=1
        ).session_id


class TestRankableItem:
    """Tests for items and contexts."""

    def test_item_type_is_data(self) -> None:
        album = RankableItem(item_id="9", title="Blue", item_type="album")  # type: ignore[arg-type]
        assert album.item_type is ItemType.ALBUM
        assert album.artist == "Unknown Artist"

    def test_empty_id_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RankableItem(item_id="", title="Nothing", item_type=ItemType.SONG)

    def test_items_are_hashable(self) -> None:
        assert len({_item("1"), _item("1"), _item("2")}) == 2

    @pytest.mark.parametrize(
        ("context", "scope_id", "expected"),
        [
            (RankingContext.ARTIST_ALBUMS, "77", "artist_albums:77"),
            (RankingContext.ARTIST_SONGS, "77", "artist_songs:77"),
            (RankingContext.ALBUM_SONGS, "12", "album_songs:12"),
            (RankingContext.ALL_SONGS, None, "global_songs"),
            (RankingContext.ALL_SONGS, "ignored", "global_songs"),
        ],
    )
    def test_context_keys(
        self, context: RankingContext, scope_id: str | None, expected: str
    ) -> None:
        assert context.context_key(scope_id) == expected

    def test_display_names(self) -> None:
        assert RankingContext.ALL_SONGS.display_name == "All Songs"
        assert RankingContext.ARTIST_ALBUMS.display_name == "Artist Albums"


class TestMatchup:
    """Tests for Matchup helpers."""

    def test_opponent_of(self) -> None:
        matchup = Matchup(item_a=_item("a"), item_b=_item("b"), context="c")
        assert matchup.opponent_of("a").item_id == "b"
        assert matchup.opponent_of("b").item_id == "a"

    def test_opponent_of_stranger(self) -> None:
        matchup = Matchup(item_a=_item("a"), item_b=_item("b"), context="c")
        assert not matchup.involves("z")
        with pytest.raises(ValueError):
            matchup.opponent_of("z")

    def test_key_is_unordered(self) -> None:
        forward = Matchup(item_a=_item("a"), item_b=_item("b"), context="c")
        backward = Matchup(item_a=_item("b"), item_b=_item("a"), context="c")
        assert forward.key == backward.key


class TestOutcome:
    """Tests for parsing the outcome variants."""

    adapter: TypeAdapter[Outcome] = TypeAdapter(Outcome)

    def test_parse_winner(self) -> None:
        outcome = self.adapter.validate_python({"kind": "winner", "winner_id": "a"})
        assert isinstance(outcome, WinnerSelected)
        assert outcome.winner_id == "a"

    def test_parse_both_liked(self) -> None:
        assert isinstance(self.adapter.validate_python({"kind": "both_liked"}), BothLiked)

    def test_parse_skipped(self) -> None:
        assert isinstance(self.adapter.validate_python({"kind": "skipped"}), Skipped)

    def test_unknown_kind_rejected(self) -> None:
        with pytest.raises(ValidationError):
            self.adapter.validate_python({"kind": "draw"})

    def test_winner_requires_id(self) -> None:
        with pytest.raises(ValidationError):
            self.adapter.validate_python({"kind": "winner"})
