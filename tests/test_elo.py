"""Tests for Elo rating calculation."""

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from ranker.scoring.elo import (
    DEFAULT_ELO_RATING,
    MAX_RATING,
    MIN_RATING,
    TIE_SCORE,
    WIN_SCORE,
    calculate_elo_update,
    calculate_expected_score,
    clamp_rating,
    confidence_for,
    k_factor_for,
)

ratings = st.floats(min_value=MIN_RATING, max_value=MAX_RATING, allow_nan=False)
k_factors = st.sampled_from([16, 32])


class TestExpectedScore:
    """Tests for the logistic expected score."""

    def test_equal_ratings_are_even(self) -> None:
        assert calculate_expected_score(1500.0, 1500.0) == pytest.approx(0.5)

    def test_400_point_gap_is_ten_to_one(self) -> None:
        assert calculate_expected_score(1500.0, 1900.0) == pytest.approx(1 / 11)
        assert calculate_expected_score(1900.0, 1500.0) == pytest.approx(10 / 11)

    @given(a=ratings, b=ratings)
    @settings(suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_scores_are_complementary(self, a: float, b: float) -> None:
        """Property: E(a, b) + E(b, a) == 1."""
        assert calculate_expected_score(a, b) + calculate_expected_score(b, a) == pytest.approx(
            1.0
        )

    @given(a=ratings, b=ratings)
    @settings(suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_score_is_a_probability(self, a: float, b: float) -> None:
        assert 0.0 < calculate_expected_score(a, b) < 1.0


class TestKFactorAndConfidence:
    """Tests for the battle-count step functions."""

    @pytest.mark.parametrize(("battles", "expected"), [(0, 32), (9, 32), (10, 16), (250, 16)])
    def test_k_factor(self, battles: int, expected: int) -> None:
        assert k_factor_for(battles) == expected

    @pytest.mark.parametrize(
        ("battles", "expected"),
        [
            (0, 0.2),
            (4, 0.2),
            (5, 0.5),
            (14, 0.5),
            (15, 0.7),
            (29, 0.7),
            (30, 0.85),
            (49, 0.85),
            (50, 1.0),
            (1000, 1.0),
        ],
    )
    def test_confidence_steps(self, battles: int, expected: float) -> None:
        assert confidence_for(battles) == expected

    def test_clamp(self) -> None:
        assert clamp_rating(50.0) == MIN_RATING
        assert clamp_rating(3500.0) == MAX_RATING
        assert clamp_rating(DEFAULT_ELO_RATING) == DEFAULT_ELO_RATING


class TestEloUpdate:
    """Tests for applying a result to a pair of ratings."""

    def test_even_win(self) -> None:
        """1500 beats 1500 with k=32: +16 / -16."""
        winner, loser = calculate_elo_update(1500.0, 1500.0, WIN_SCORE, 32, 32)
        assert winner == pytest.approx(1516.0)
        assert loser == pytest.approx(1484.0)

    def test_upset_win(self) -> None:
        """1500 beats 1900: the underdog gains about 29 points."""
        winner, loser = calculate_elo_update(1500.0, 1900.0, WIN_SCORE, 32, 32)
        assert winner == pytest.approx(1529.09, abs=0.01)
        assert loser == pytest.approx(1870.91, abs=0.01)

    def test_each_side_uses_its_own_k_factor(self) -> None:
        winner, loser = calculate_elo_update(1500.0, 1500.0, WIN_SCORE, 32, 16)
        assert winner == pytest.approx(1516.0)
        assert loser == pytest.approx(1492.0)

    def test_equal_tie_changes_nothing(self) -> None:
        a, b = calculate_elo_update(1700.0, 1700.0, TIE_SCORE, 32, 32)
        assert a == pytest.approx(1700.0)
        assert b == pytest.approx(1700.0)

    @given(winner=ratings, loser=ratings, k_w=k_factors, k_l=k_factors)
    @settings(suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_win_never_lowers_winner_and_stays_in_band(
        self, winner: float, loser: float, k_w: int, k_l: int
    ) -> None:
        new_winner, new_loser = calculate_elo_update(winner, loser, WIN_SCORE, k_w, k_l)
        assert new_winner >= winner
        assert new_loser <= loser
        assert MIN_RATING <= new_winner <= MAX_RATING
        assert MIN_RATING <= new_loser <= MAX_RATING

    @given(a=ratings, b=ratings, k_a=k_factors, k_b=k_factors)
    @settings(suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_tie_pulls_ratings_together(self, a: float, b: float, k_a: int, k_b: int) -> None:
        """Property: a draw moves the higher rating down and the lower rating up."""
        new_a, new_b = calculate_elo_update(a, b, TIE_SCORE, k_a, k_b)
        if a > b:
            assert new_a <= a
            assert new_b >= b
        elif a < b:
            assert new_a >= a
            assert new_b <= b
        else:
            assert new_a == pytest.approx(a)
            assert new_b == pytest.approx(b)

    def test_extreme_spread_is_clamped(self) -> None:
        low, high = calculate_elo_update(MIN_RATING, MAX_RATING, 0.0, 32, 32)
        assert low == MIN_RATING
        assert high == MAX_RATING
