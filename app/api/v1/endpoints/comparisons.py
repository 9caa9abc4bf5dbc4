from typing import Any, List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app import crud, schemas
from app.api import deps
from app.engine.config import EngineConfig
from app.engine.exceptions import (
    IdempotencyConflictError,
    InsufficientPoolError,
    InvalidVoteError,
    ItemNotFoundError,
)
from app.services import voting
from app.services.voting import Identity

router = APIRouter()


@router.get("/next", response_model=schemas.ComparisonPair)
def get_next_comparison_pair(
    *,
    db: Session = Depends(deps.get_db),
    identity: Identity = Depends(deps.get_identity),
    config: EngineConfig = Depends(deps.get_engine_config),
) -> Any:
    """
    Get the next pair of items to compare.

    Items with few votes are strongly preferred so new items settle quickly.
    When the request carries a voter identity (X-Session-Id or X-User-Id),
    items and look-alike items the voter has just seen are pushed back.

    Returns:
        - 200 with the pair (order carries no meaning)
        - 503 when fewer than two eligible items exist; try again later
    """
    try:
        item_a, item_b = voting.select_pair(db, identity, config)
    except InsufficientPoolError as exc:
        raise HTTPException(
            status_code=503,
            detail=str(exc),
            headers={"Retry-After": "60"},
        )
    return {"item_a": item_a, "item_b": item_b}


@router.post("/", response_model=schemas.VoteResult, status_code=201)
def create_vote(
    *,
    db: Session = Depends(deps.get_db),
    vote_in: schemas.VoteCreate,
    identity: Identity = Depends(deps.get_identity),
    config: EngineConfig = Depends(deps.get_engine_config),
) -> Any:
    """
    Submit the winner of a comparison.

    Returns the new ratings plus the rating gap and upset flag computed from
    the pre-vote ratings. Send an `idempotency_key` to make client retries
    safe: a repeated key returns the original result with `duplicate=true`,
    and a key reused for a different vote or voter is refused with 409.
    """
    try:
        return voting.submit_vote(db, vote_in, identity, config)
    except InvalidVoteError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except ItemNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except IdempotencyConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc))


@router.post("/skip", response_model=schemas.SkipResult)
def skip_comparison(
    *,
    db: Session = Depends(deps.get_db),
    skip_in: schemas.SkipCreate,
    config: EngineConfig = Depends(deps.get_engine_config),
) -> Any:
    """
    Record that the voter skipped a pair without choosing.

    Skips lower both items' engagement factor (and so their familiarity).
    """
    try:
        return voting.submit_skip(db, skip_in, config)
    except ItemNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))


@router.get("/recent", response_model=List[schemas.Comparison])
def read_recent_comparisons(
    *,
    db: Session = Depends(deps.get_db),
    identity: Identity = Depends(deps.get_identity),
    limit: int = 20,
) -> Any:
    """
    The calling voter's most recent comparisons, newest first.
    """
    if identity.is_anonymous:
        raise HTTPException(
            status_code=400, detail="X-Session-Id or X-User-Id header required"
        )
    limit = max(1, min(limit, 100))
    return crud.comparison.get_recent_for_voter(
        db, user_id=identity.user_id, session_id=identity.session_id, limit=limit
    )
