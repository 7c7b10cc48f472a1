"""Elo rating calculation.

Pure functions only: the rating store applies these to records, the
sequencer never calls them directly.
"""

import math

# Initial Elo rating for an item seen for the first time in a context
DEFAULT_ELO_RATING = 1500.0

# Ratings are clamped to this band after every update
MIN_RATING = 100.0
MAX_RATING = 3000.0

# Items with fewer battles than this are provisional and move faster
PROVISIONAL_BATTLES = 10
PROVISIONAL_K_FACTOR = 32
ESTABLISHED_K_FACTOR = 16

# (battles upper bound, confidence) steps; anything past the last bound is 1.0
CONFIDENCE_STEPS = ((5, 0.2), (15, 0.5), (30, 0.7), (50, 0.85))

WIN_SCORE = 1.0
TIE_SCORE = 0.5
LOSS_SCORE = 0.0


def calculate_expected_score(rating_a: float, rating_b: float) -> float:
    """Calculate expected score for item A vs item B.

    Args:
        rating_a: Current Elo rating of item A
        rating_b: Current Elo rating of item B

    Returns:
        Probability that A outscores B, strictly between 0 and 1
    """
    return 1.0 / (1.0 + math.pow(10.0, (rating_b - rating_a) / 400.0))


def k_factor_for(battles: int) -> int:
    """K-factor for an item that has fought ``battles`` times."""
    if battles < PROVISIONAL_BATTLES:
        return PROVISIONAL_K_FACTOR
    return ESTABLISHED_K_FACTOR


def confidence_for(battles: int) -> float:
    """Step function from battle count to how settled a rating is."""
    for upper_bound, confidence in CONFIDENCE_STEPS:
        if battles < upper_bound:
            return confidence
    return 1.0


def clamp_rating(rating: float) -> float:
    return max(MIN_RATING, min(MAX_RATING, rating))


def calculate_elo_update(
    rating_a: float,
    rating_b: float,
    score_a: float,
    k_factor_a: float,
    k_factor_b: float,
) -> tuple[float, float]:
    """Calculate new Elo ratings after a matchup.

    Each side moves by its own k-factor, so a provisional item can swing
    further than an established opponent in the same game.

    Args:
        rating_a: Current Elo rating of item A
        rating_b: Current Elo rating of item B
        score_a: Actual score for A (1.0 win, 0.5 tie, 0.0 loss)
        k_factor_a: K-factor for A
        k_factor_b: K-factor for B

    Returns:
        Tuple of (new_rating_a, new_rating_b), both clamped
    """
    expected_a = calculate_expected_score(rating_a, rating_b)
    expected_b = 1.0 - expected_a
    score_b = 1.0 - score_a

    new_rating_a = rating_a + k_factor_a * (score_a - expected_a)
    new_rating_b = rating_b + k_factor_b * (score_b - expected_b)

    return clamp_rating(new_rating_a), clamp_rating(new_rating_b)
