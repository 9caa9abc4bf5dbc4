from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app import crud, schemas
from app.api import deps
from app.services.voting import Identity

router = APIRouter()

MAX_LEADERBOARD_LIMIT = 10000


@router.get("/", response_model=schemas.GlobalStats)
def get_global_statistics(
    *,
    db: Session = Depends(deps.get_db),
) -> Any:
    """
    Catalogue size, total votes, distinct voters and today's votes.
    """
    start_of_day = datetime.now(timezone.utc).replace(
        hour=0, minute=0, second=0, microsecond=0
    )
    return {
        "total_items": crud.item.count(db),
        "eligible_items": crud.item.count_eligible(db),
        "total_comparisons": crud.comparison.count(db),
        "total_voters": crud.comparison.count_voters(db),
        "today_comparisons": crud.comparison.count(db, since=start_of_day),
    }


@router.get("/me", response_model=schemas.VoterStats)
def get_voter_statistics(
    *,
    db: Session = Depends(deps.get_db),
    identity: Identity = Depends(deps.get_identity),
) -> Any:
    """
    Personal stats for the calling voter.

    An upset pick is a vote for the lower-rated item when the rating gap
    exceeded the upset threshold at the time of the vote.
    """
    if identity.is_anonymous:
        raise HTTPException(
            status_code=400, detail="X-Session-Id or X-User-Id header required"
        )

    stats = crud.comparison.get_voter_stats(
        db, user_id=identity.user_id, session_id=identity.session_id
    )
    total = stats["total_comparisons"]
    upset_pick_rate = stats["upset_picks"] / total * 100 if total > 0 else 0.0

    return {
        "total_comparisons": total,
        "upset_picks": stats["upset_picks"],
        "upset_pick_rate": round(upset_pick_rate, 1),
        "average_rating_difference": round(stats["average_rating_difference"], 1),
        "biggest_upset": stats["biggest_upset"],
    }


@router.get("/leaderboard", response_model=schemas.VoterLeaderboard)
def get_voter_leaderboard(
    *,
    db: Session = Depends(deps.get_db),
    limit: int = 100,
) -> Any:
    """
    Voters ranked by how many comparisons they have made.

    Signed-in users (X-User-Id) and anonymous sessions are ranked together.
    """
    limit = max(1, min(limit, MAX_LEADERBOARD_LIMIT))
    voters = crud.comparison.get_voter_leaderboard(db, limit=limit)
    return {
        "voters": [
            {"rank": position, **voter}
            for position, voter in enumerate(voters, start=1)
        ],
        "total": crud.comparison.count_voters(db),
    }
