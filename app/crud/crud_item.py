from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from app.crud.base import CRUDBase
from app.engine.scoring import ItemScores
from app.models.item import Item
from app.schemas.item import ItemCreate, ItemUpdate


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class CRUDItem(CRUDBase[Item, ItemCreate, ItemUpdate]):
    def get_by_title(self, db: Session, *, title: str) -> Optional[Item]:
        """Titles are unique case-insensitively."""
        return (
            db.query(Item)
            .filter(func.lower(Item.title) == title.strip().lower())
            .first()
        )

    def _eligible(self, db: Session):
        # Only items with a usable image can be shown in a comparison
        return db.query(Item).filter(Item.image_url.isnot(None), Item.image_url != "")

    def count_eligible(self, db: Session) -> int:
        return self._eligible(db).count()

    def get_candidate_pool(self, db: Session, *, limit: int = 100) -> List[Item]:
        """Random sample of at most ``limit`` eligible items."""
        return self._eligible(db).order_by(func.random()).limit(limit).all()

    def get_leaderboard(
        self, db: Session, *, skip: int = 0, limit: int = 100
    ) -> List[Item]:
        return (
            db.query(Item)
            .order_by(Item.rating.desc(), Item.comparison_count.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def count(self, db: Session) -> int:
        return db.query(func.count(Item.id)).scalar() or 0

    def get_rank(self, db: Session, *, rating: float) -> int:
        """1 + the number of items rated strictly higher (ties share a rank)."""
        higher = db.query(func.count(Item.id)).filter(Item.rating > rating).scalar()
        return int(higher or 0) + 1

    def search(self, db: Session, *, query: str, limit: int = 20) -> List[Item]:
        """
        Case-insensitive substring search over title and description.

        Titles starting with the query come first, then other title matches,
        then description-only matches; rating breaks ties.
        """
        term = query.strip().lower()
        pattern = f"%{_escape_like(term)}%"
        title = func.lower(Item.title)
        relevance = case(
            (title.like(f"{_escape_like(term)}%", escape="\\"), 1),
            (title.like(pattern, escape="\\"), 2),
            else_=3,
        )
        return (
            db.query(Item)
            .filter(
                title.like(pattern, escape="\\")
                | func.lower(Item.description).like(pattern, escape="\\")
            )
            .order_by(relevance, Item.rating.desc())
            .limit(limit)
            .all()
        )

    def apply_vote(
        self,
        db: Session,
        *,
        item_id: str,
        rating_delta: float,
        won: bool,
        upset_win: bool,
        now: datetime,
    ) -> None:
        """
        Apply one vote result to an item as a single UPDATE statement.

        Every counter (and the rating itself) is written as ``col = col + delta``
        so concurrent votes on the same item cannot lose increments. The
        right-hand sides all see the pre-update row, which the peak rating and
        streak expressions rely on.
        """
        new_rating = Item.rating + rating_delta
        # An item that has never been voted on peaks at its starting rating
        peak = func.coalesce(Item.peak_rating, Item.rating)
        values = {
            Item.rating: new_rating,
            Item.comparison_count: Item.comparison_count + 1,
            Item.wins: Item.wins + (1 if won else 0),
            Item.losses: Item.losses + (0 if won else 1),
            Item.last_compared_at: now,
            Item.first_vote_date: func.coalesce(Item.first_vote_date, now),
            Item.peak_rating: case((peak < new_rating, new_rating), else_=peak),
            Item.peak_rating_date: case(
                (peak < new_rating, now),
                else_=func.coalesce(Item.peak_rating_date, now),
            ),
        }
        if won:
            next_streak = Item.current_streak_wins + 1
            values[Item.current_streak_wins] = next_streak
            values[Item.current_streak_losses] = 0
            values[Item.longest_win_streak] = case(
                (Item.longest_win_streak < next_streak, next_streak),
                else_=Item.longest_win_streak,
            )
        else:
            values[Item.current_streak_wins] = 0
            values[Item.current_streak_losses] = Item.current_streak_losses + 1
        if upset_win:
            values[Item.upset_win_count] = Item.upset_win_count + 1

        db.query(Item).filter(Item.id == item_id).update(
            values, synchronize_session=False
        )

    def apply_skip(self, db: Session, *, item_ids: Iterable[str]) -> None:
        db.query(Item).filter(Item.id.in_(list(item_ids))).update(
            {Item.skip_count: Item.skip_count + 1}, synchronize_session=False
        )

    def set_scores(self, db: Session, *, db_obj: Item, scores: ItemScores) -> Item:
        db_obj.familiarity_score = scores.familiarity_score
        db_obj.rating_confidence = scores.rating_confidence
        db.add(db_obj)
        return db_obj


item = CRUDItem(Item)
