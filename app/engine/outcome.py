from typing import NamedTuple

from app.engine.config import RatingConfig


class OutcomeEvaluation(NamedTuple):
    rating_difference: float
    was_upset: bool


def evaluate_outcome(
    rating_a: float, rating_b: float, winner_is_a: bool, config: RatingConfig
) -> OutcomeEvaluation:
    """
    Classify a result using the pre-vote ratings.

    An upset is a win by the lower-rated item when the gap reaches
    ``config.upset_threshold``.
    """
    rating_difference = abs(rating_a - rating_b)
    winner_rating, loser_rating = (
        (rating_a, rating_b) if winner_is_a else (rating_b, rating_a)
    )
    was_upset = (
        rating_difference >= config.upset_threshold and winner_rating < loser_rating
    )
    return OutcomeEvaluation(rating_difference=rating_difference, was_upset=was_upset)
