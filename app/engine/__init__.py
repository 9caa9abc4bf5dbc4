from .config import EngineConfig, RatingConfig, ScoringConfig, SelectionConfig  # noqa: F401
from .exceptions import (  # noqa: F401
    EngineError,
    InsufficientPoolError,
    InvalidVoteError,
    ItemNotFoundError,
    ConfigurationError,
    IdempotencyConflictError,
)
from .outcome import OutcomeEvaluation, evaluate_outcome  # noqa: F401
from .rating import expected_score, k_factor, update_ratings  # noqa: F401
from .scoring import ItemScores, rating_confidence, score_item  # noqa: F401
from .selection import SeenPair, SessionRecency, select_pair  # noqa: F401
from .similarity import classify_similarity  # noqa: F401
from .vote import VoteOutcome, record_vote  # noqa: F401
