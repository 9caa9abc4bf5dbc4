from typing import NamedTuple, Optional

from app.engine.config import RatingConfig
from app.engine.exceptions import InvalidVoteError
from app.engine.outcome import evaluate_outcome
from app.engine.rating import update_ratings


class VoteOutcome(NamedTuple):
    new_rating_1: float
    new_rating_2: float
    rating_difference: float
    was_upset: bool


def validate_vote(
    item1_id: Optional[str], item2_id: Optional[str], winner_id: Optional[str]
) -> None:
    if not item1_id or not item2_id or not winner_id:
        raise InvalidVoteError("item1_id, item2_id and winner_id are required")
    if str(item1_id) == str(item2_id):
        raise InvalidVoteError("Cannot compare an item with itself")
    if str(winner_id) not in (str(item1_id), str(item2_id)):
        raise InvalidVoteError("Winner must be one of the two items")


def record_vote(
    item1_id: str,
    item2_id: str,
    winner_id: str,
    pre_rating_1: float,
    pre_rating_2: float,
    confidence_1: float,
    confidence_2: float,
    config: RatingConfig,
) -> VoteOutcome:
    """
    Turn one pairwise judgment into new ratings plus outcome metadata.

    Nothing is persisted here. Malformed input raises ``InvalidVoteError``
    before any computation.
    """
    validate_vote(item1_id, item2_id, winner_id)
    item1_won = str(winner_id) == str(item1_id)

    new_rating_1, new_rating_2 = update_ratings(
        pre_rating_1, pre_rating_2, item1_won, confidence_1, confidence_2, config
    )
    evaluation = evaluate_outcome(pre_rating_1, pre_rating_2, item1_won, config)

    return VoteOutcome(
        new_rating_1=new_rating_1,
        new_rating_2=new_rating_2,
        rating_difference=evaluation.rating_difference,
        was_upset=evaluation.was_upset,
    )
