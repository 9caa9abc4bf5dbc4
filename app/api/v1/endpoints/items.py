from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app import crud, models, schemas
from app.api import deps
from app.engine.config import EngineConfig
from app.engine.similarity import classify_similarity
from app.services import voting

router = APIRouter()

MAX_LEADERBOARD_LIMIT = 10000
MAX_SEARCH_RESULTS = 20
RECENT_MATCHES = 10
DUPLICATE_TITLE = "An item with this title already exists"


def _ranked(db: Session, item: models.Item) -> Dict[str, Any]:
    data = schemas.Item.model_validate(item).model_dump()
    data["rank"] = crud.item.get_rank(db, rating=item.rating)
    return data


@router.get("/", response_model=schemas.Leaderboard)
def read_leaderboard(
    *,
    db: Session = Depends(deps.get_db),
    skip: int = 0,
    limit: int = 100,
) -> Any:
    """
    Items ordered by rating, highest first, with the catalogue size.
    """
    # Cap to keep the query bounded
    limit = max(1, min(limit, MAX_LEADERBOARD_LIMIT))
    skip = max(0, skip)
    return {
        "rankings": crud.item.get_leaderboard(db, skip=skip, limit=limit),
        "total": crud.item.count(db),
        "skip": skip,
        "limit": limit,
    }


@router.post(
    "/",
    response_model=schemas.Item,
    status_code=201,
    dependencies=[Depends(deps.require_admin)],
)
def create_item(
    *,
    db: Session = Depends(deps.get_db),
    item_in: schemas.ItemCreate,
) -> Any:
    """
    Add an item to the catalogue. Requires the admin key.

    New items start at rating 1500 with no votes. Titles are unique
    regardless of case.
    """
    if crud.item.get_by_title(db, title=item_in.title):
        raise HTTPException(status_code=409, detail=DUPLICATE_TITLE)
    try:
        return crud.item.create(db, obj_in=item_in)
    except IntegrityError:
        # Same title inserted concurrently
        db.rollback()
        raise HTTPException(status_code=409, detail=DUPLICATE_TITLE)


@router.get("/similarity", response_model=schemas.SimilarityResult)
def classify_title(*, title: str) -> Any:
    """
    Similarity group a title falls into (null when no rule matches).
    """
    return {"title": title, "group": classify_similarity(title)}


@router.get("/search", response_model=schemas.ItemSearchResults)
def search_items(
    *,
    db: Session = Depends(deps.get_db),
    query: str = "",
) -> Any:
    """
    Find items by title or description and report where they rank.

    Titles starting with the query are listed first. At most 20 results.
    """
    if not query.strip():
        raise HTTPException(status_code=400, detail="Search query is required")
    items = crud.item.search(db, query=query, limit=MAX_SEARCH_RESULTS)
    return {
        "query": query,
        "count": len(items),
        "results": [_ranked(db, item) for item in items],
    }


@router.get("/{item_id}", response_model=schemas.ItemDetail)
def read_item(
    *,
    db: Session = Depends(deps.get_db),
    item_id: str,
) -> Any:
    """
    One item with its leaderboard rank, win rate and last 10 matches.
    """
    item = crud.item.get(db, id=item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Item not found")

    recent = []
    for comparison in crud.comparison.get_recent_for_item(
        db, item_id=item_id, limit=RECENT_MATCHES
    ):
        opponent = (
            comparison.item2 if comparison.item1_id == item.id else comparison.item1
        )
        recent.append(
            {
                "comparison_id": comparison.id,
                "created_at": comparison.created_at,
                "opponent": {
                    "id": opponent.id,
                    "title": opponent.title,
                    "image_url": opponent.image_url,
                },
                "won": comparison.winner_id == item.id,
            }
        )

    win_rate = (
        round(item.wins / item.comparison_count * 100, 1)
        if item.comparison_count > 0
        else 0.0
    )
    return {**_ranked(db, item), "win_rate": win_rate, "recent_comparisons": recent}


@router.patch(
    "/{item_id}",
    response_model=schemas.Item,
    dependencies=[Depends(deps.require_admin)],
)
def update_item(
    *,
    db: Session = Depends(deps.get_db),
    item_id: str,
    item_in: schemas.ItemUpdate,
) -> Any:
    """
    Update an item's description or image. Requires the admin key.
    """
    item = crud.item.get(db, id=item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Item not found")
    return crud.item.update(db, db_obj=item, obj_in=item_in)


@router.get("/{item_id}/comparisons", response_model=List[schemas.Comparison])
def read_item_comparisons(
    *,
    db: Session = Depends(deps.get_db),
    item_id: str,
    skip: int = 0,
    limit: int = 100,
) -> Any:
    """
    Comparison history of one item, newest first.
    """
    if not crud.item.get(db, id=item_id):
        raise HTTPException(status_code=404, detail="Item not found")
    limit = max(1, min(limit, 1000))
    return crud.comparison.get_multi_by_item(
        db, item_id=item_id, skip=max(0, skip), limit=limit
    )


@router.post("/{item_id}/scores", response_model=schemas.ItemScores)
def recompute_item_scores(
    *,
    db: Session = Depends(deps.get_db),
    item_id: str,
    config: EngineConfig = Depends(deps.get_engine_config),
) -> Any:
    """
    Recompute familiarity and rating confidence from the item's counters.

    Familiarity decays with time since the last comparison, so a stored
    value goes stale for items that stop being shown.
    """
    item = crud.item.get(db, id=item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Item not found")
    scores = voting.recompute_scores(db, item, config)
    db.commit()
    return {
        "item_id": str(item.id),
        "familiarity_score": scores.familiarity_score,
        "rating_confidence": scores.rating_confidence,
    }
