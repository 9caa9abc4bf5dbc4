"""
Persistence-backed operations around the engine.

The engine modules only compute values. This module reads what they need
from the database, calls them with an explicit ``EngineConfig`` snapshot and
writes the results back: counters through atomic deltas, derived scores
recomputed from the updated row in the same transaction.
"""
import random
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Tuple

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app import crud, models, schemas
from app.engine.config import EngineConfig
from app.engine.exceptions import (
    IdempotencyConflictError,
    InsufficientPoolError,
    ItemNotFoundError,
)
from app.engine.scoring import ItemScores, rating_confidence, score_item
from app.engine.selection import SeenPair, SessionRecency, select_pair as draw_pair
from app.engine.vote import record_vote, validate_vote

logger = structlog.get_logger()


@dataclass(frozen=True)
class Identity:
    """Opaque voter identity supplied by the identity collaborator."""

    user_id: Optional[str] = None
    session_id: Optional[str] = None

    @property
    def is_anonymous(self) -> bool:
        return not self.user_id and not self.session_id


def load_session_recency(
    db: Session, identity: Identity, config: EngineConfig
) -> Optional[SessionRecency]:
    """Recency map for the voter, or None when there is no identity."""
    if identity.is_anonymous:
        return None

    lookback = max(
        config.selection.recency_lookback, config.selection.diversity_lookback_count
    )
    recent = crud.comparison.get_recent_for_voter(
        db, user_id=identity.user_id, session_id=identity.session_id, limit=lookback
    )
    history = [
        SeenPair(
            item1_id=str(c.item1_id),
            item2_id=str(c.item2_id),
            item1_title=c.item1.title if c.item1 else None,
            item2_title=c.item2.title if c.item2 else None,
        )
        for c in recent
    ]
    return SessionRecency.from_history(history, config.selection)


def select_pair(
    db: Session,
    identity: Identity,
    config: EngineConfig,
    rng: Optional[random.Random] = None,
) -> Tuple[models.Item, models.Item]:
    """
    Pick the next pair to show to a voter.

    Raises:
        InsufficientPoolError: fewer than two eligible items exist
    """
    candidates = crud.item.get_candidate_pool(
        db, limit=config.selection.candidate_pool_size
    )
    if len(candidates) < 2:
        raise InsufficientPoolError(len(candidates))

    recency = load_session_recency(db, identity, config)
    item_a, item_b = draw_pair(candidates, recency, config.selection, rng=rng)

    logger.info(
        "pair_selected",
        item_a=str(item_a.id),
        item_b=str(item_b.id),
        pool_size=len(candidates),
        personalized=recency is not None,
    )
    return item_a, item_b


def recompute_scores(
    db: Session,
    item: models.Item,
    config: EngineConfig,
    now: Optional[datetime] = None,
) -> ItemScores:
    """Recompute and stage familiarity and confidence for one item (no commit)."""
    scores = score_item(item, config.scoring, now=now)
    crud.item.set_scores(db, db_obj=item, scores=scores)
    return scores


def _result_from_comparison(
    comparison: models.Comparison, duplicate: bool = False
) -> schemas.VoteResult:
    return schemas.VoteResult(
        comparison_id=str(comparison.id),
        item1_id=str(comparison.item1_id),
        item2_id=str(comparison.item2_id),
        winner_id=str(comparison.winner_id),
        new_rating_1=comparison.item1_rating_after,
        new_rating_2=comparison.item2_rating_after,
        rating_difference=comparison.rating_difference,
        was_upset=comparison.was_upset,
        duplicate=duplicate,
    )


def _replay(
    existing: models.Comparison, vote_in: schemas.VoteCreate, identity: Identity
) -> schemas.VoteResult:
    """Stored result for a repeated key, provided it is the same vote."""
    same_vote = (
        {str(existing.item1_id), str(existing.item2_id)}
        == {str(vote_in.item1_id), str(vote_in.item2_id)}
        and str(existing.winner_id) == str(vote_in.winner_id)
    )
    same_voter = (
        existing.user_id == identity.user_id
        and existing.session_id == identity.session_id
    )
    if not (same_vote and same_voter):
        raise IdempotencyConflictError(vote_in.idempotency_key)
    logger.info("duplicate_vote_ignored", comparison_id=str(existing.id))
    return _result_from_comparison(existing, duplicate=True)


def submit_vote(
    db: Session,
    vote_in: schemas.VoteCreate,
    identity: Identity,
    config: EngineConfig,
) -> schemas.VoteResult:
    """
    Record one vote and update both items.

    Malformed input raises ``InvalidVoteError`` before anything is read or
    written. A repeated ``idempotency_key`` returns the stored result
    without counting the vote again; reusing a key for a different vote or
    voter raises ``IdempotencyConflictError``.
    """
    validate_vote(vote_in.item1_id, vote_in.item2_id, vote_in.winner_id)

    if vote_in.idempotency_key:
        existing = crud.comparison.get_by_idempotency_key(
            db, key=vote_in.idempotency_key
        )
        if existing:
            return _replay(existing, vote_in, identity)

    item1 = crud.item.get(db, id=vote_in.item1_id)
    if not item1:
        raise ItemNotFoundError(vote_in.item1_id)
    item2 = crud.item.get(db, id=vote_in.item2_id)
    if not item2:
        raise ItemNotFoundError(vote_in.item2_id)

    pre_rating_1 = item1.rating
    pre_rating_2 = item2.rating
    outcome = record_vote(
        str(item1.id),
        str(item2.id),
        vote_in.winner_id,
        pre_rating_1,
        pre_rating_2,
        rating_confidence(item1.comparison_count, config.scoring),
        rating_confidence(item2.comparison_count, config.scoring),
        config.rating,
    )
    item1_won = str(vote_in.winner_id) == str(item1.id)
    now = datetime.now(timezone.utc)

    comparison = models.Comparison(
        item1_id=str(item1.id),
        item2_id=str(item2.id),
        winner_id=str(vote_in.winner_id),
        item1_rating_before=pre_rating_1,
        item2_rating_before=pre_rating_2,
        item1_rating_after=outcome.new_rating_1,
        item2_rating_after=outcome.new_rating_2,
        rating_difference=outcome.rating_difference,
        was_upset=outcome.was_upset,
        user_id=identity.user_id,
        session_id=identity.session_id,
        idempotency_key=vote_in.idempotency_key,
        created_at=now,
    )
    db.add(comparison)

    crud.item.apply_vote(
        db,
        item_id=str(item1.id),
        rating_delta=outcome.new_rating_1 - pre_rating_1,
        won=item1_won,
        upset_win=outcome.was_upset and item1_won,
        now=now,
    )
    crud.item.apply_vote(
        db,
        item_id=str(item2.id),
        rating_delta=outcome.new_rating_2 - pre_rating_2,
        won=not item1_won,
        upset_win=outcome.was_upset and not item1_won,
        now=now,
    )

    try:
        db.flush()
    except IntegrityError:
        # Same idempotency key committed concurrently: report the stored vote
        db.rollback()
        if vote_in.idempotency_key:
            existing = crud.comparison.get_by_idempotency_key(
                db, key=vote_in.idempotency_key
            )
            if existing:
                return _replay(existing, vote_in, identity)
        raise

    # Scores are derived from the counters as they are after the update
    db.refresh(item1)
    db.refresh(item2)
    recompute_scores(db, item1, config, now=now)
    recompute_scores(db, item2, config, now=now)

    db.commit()
    db.refresh(comparison)

    logger.info(
        "vote_recorded",
        comparison_id=str(comparison.id),
        winner_id=str(vote_in.winner_id),
        rating_difference=round(outcome.rating_difference, 2),
        was_upset=outcome.was_upset,
    )
    return _result_from_comparison(comparison)


def submit_skip(
    db: Session,
    skip_in: schemas.SkipCreate,
    config: EngineConfig,
) -> schemas.SkipResult:
    """Count a skipped pair against both items and refresh their familiarity."""
    item1 = crud.item.get(db, id=skip_in.item1_id)
    if not item1:
        raise ItemNotFoundError(skip_in.item1_id)
    item2 = crud.item.get(db, id=skip_in.item2_id)
    if not item2:
        raise ItemNotFoundError(skip_in.item2_id)

    crud.item.apply_skip(db, item_ids=[str(item1.id), str(item2.id)])
    db.flush()
    db.refresh(item1)
    db.refresh(item2)
    recompute_scores(db, item1, config)
    recompute_scores(db, item2, config)
    db.commit()

    logger.info("pair_skipped", item1_id=str(item1.id), item2_id=str(item2.id))
    return schemas.SkipResult(
        item1_id=str(item1.id),
        item2_id=str(item2.id),
        skip_count_1=item1.skip_count,
        skip_count_2=item2.skip_count,
    )
