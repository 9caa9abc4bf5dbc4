"""
Elo rating updates with a per-side, confidence-driven K-factor.

A well-established item (high confidence) moves less than a newly added one,
even within the same match, so the two deltas are not necessarily symmetric.
Ratings are never clamped; after many lopsided results they may leave the
usual range or go negative.
"""
from typing import Tuple

from app.engine.config import RatingConfig


def expected_score(rating_a: float, rating_b: float) -> float:
    """Probability that A beats B under the logistic Elo model."""
    return 1.0 / (1.0 + 10 ** ((rating_b - rating_a) / 400.0))


def k_factor(confidence: float, config: RatingConfig) -> float:
    """
    Pick the K-factor for one side of a match.

    confidence >= high threshold   -> low K (stable)
    confidence >= medium threshold -> medium K
    otherwise                      -> high K (fast learning)
    """
    if not config.dynamic_k_enabled:
        return config.base_k_factor
    if confidence >= config.high_confidence_threshold:
        return config.high_confidence_k
    if confidence >= config.medium_confidence_threshold:
        return config.medium_confidence_k
    return config.low_confidence_k


def update_ratings(
    rating_a: float,
    rating_b: float,
    a_won: bool,
    confidence_a: float,
    confidence_b: float,
    config: RatingConfig,
) -> Tuple[float, float]:
    """
    Compute new ratings for both items after one comparison.

    Args:
        rating_a: Pre-vote rating of item A
        rating_b: Pre-vote rating of item B
        a_won: True if A was picked
        confidence_a: Rating confidence of A (0-1)
        confidence_b: Rating confidence of B (0-1)
        config: Rating parameters

    Returns:
        (new_rating_a, new_rating_b)
    """
    expected_a = expected_score(rating_a, rating_b)
    expected_b = expected_score(rating_b, rating_a)

    actual_a = 1.0 if a_won else 0.0
    actual_b = 1.0 - actual_a

    new_a = rating_a + k_factor(confidence_a, config) * (actual_a - expected_a)
    new_b = rating_b + k_factor(confidence_b, config) * (actual_b - expected_b)

    return new_a, new_b
