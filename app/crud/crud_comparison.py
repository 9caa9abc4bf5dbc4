from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Session, joinedload

from app.crud.base import CRUDBase
from app.models.comparison import Comparison
from app.schemas.comparison import VoteCreate


class CRUDComparison(CRUDBase[Comparison, VoteCreate, VoteCreate]):
    def get_by_idempotency_key(self, db: Session, *, key: str) -> Optional[Comparison]:
        return db.query(Comparison).filter(Comparison.idempotency_key == key).first()

    def _for_voter(
        self, db: Session, *, user_id: Optional[str], session_id: Optional[str]
    ):
        query = db.query(Comparison)
        # A signed-in user's history follows the user across sessions
        if user_id:
            return query.filter(Comparison.user_id == user_id)
        return query.filter(Comparison.session_id == session_id)

    def get_recent_for_voter(
        self,
        db: Session,
        *,
        user_id: Optional[str] = None,
        session_id: Optional[str] = None,
        limit: int = 30,
    ) -> List[Comparison]:
        """
        Most recent comparisons of one voter, newest first.

        Bounded by ``limit`` and served by the (voter, created_at) indexes,
        so the cost does not grow with the voter's full history.
        """
        if not user_id and not session_id:
            return []
        return (
            self._for_voter(db, user_id=user_id, session_id=session_id)
            .options(joinedload(Comparison.item1), joinedload(Comparison.item2))
            .order_by(Comparison.created_at.desc())
            .limit(limit)
            .all()
        )

    def get_multi_by_item(
        self, db: Session, *, item_id: str, skip: int = 0, limit: int = 100
    ) -> List[Comparison]:
        return (
            db.query(Comparison)
            .filter(
                (Comparison.item1_id == item_id) | (Comparison.item2_id == item_id)
            )
            .order_by(Comparison.created_at.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def get_recent_for_item(
        self, db: Session, *, item_id: str, limit: int = 10
    ) -> List[Comparison]:
        return (
            db.query(Comparison)
            .options(joinedload(Comparison.item1), joinedload(Comparison.item2))
            .filter(
                (Comparison.item1_id == item_id) | (Comparison.item2_id == item_id)
            )
            .order_by(Comparison.created_at.desc())
            .limit(limit)
            .all()
        )

    def get_voter_stats(
        self,
        db: Session,
        *,
        user_id: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Aggregate upset and rating-gap figures over one voter's comparisons."""
        row = (
            self._for_voter(db, user_id=user_id, session_id=session_id)
            .with_entities(
                func.count(Comparison.id),
                func.sum(case((Comparison.was_upset.is_(True), 1), else_=0)),
                func.avg(Comparison.rating_difference),
                func.max(
                    case((Comparison.was_upset.is_(True), Comparison.rating_difference))
                ),
            )
            .one()
        )
        total, upsets, avg_diff, biggest_upset = row
        return {
            "total_comparisons": int(total or 0),
            "upset_picks": int(upsets or 0),
            "average_rating_difference": float(avg_diff or 0.0),
            "biggest_upset": float(biggest_upset) if biggest_upset is not None else None,
        }

    def count(self, db: Session, *, since: Optional[datetime] = None) -> int:
        query = db.query(func.count(Comparison.id))
        if since is not None:
            query = query.filter(Comparison.created_at >= since)
        return int(query.scalar() or 0)

    def count_voters(self, db: Session) -> int:
        """Distinct signed-in users plus distinct anonymous sessions."""
        users = db.query(func.count(func.distinct(Comparison.user_id))).scalar() or 0
        sessions = (
            db.query(func.count(func.distinct(Comparison.session_id)))
            .filter(Comparison.user_id.is_(None))
            .scalar()
            or 0
        )
        return int(users) + int(sessions)

    def get_voter_leaderboard(
        self, db: Session, *, limit: int = 100
    ) -> List[Dict[str, Any]]:
        """
        Voters ranked by number of comparisons, most active first.

        Signed-in users are grouped by user id; anonymous votes by session.
        """
        registered = (
            db.query(
                Comparison.user_id,
                func.count(Comparison.id),
                func.max(Comparison.created_at),
            )
            .filter(Comparison.user_id.isnot(None))
            .group_by(Comparison.user_id)
            .all()
        )
        anonymous = (
            db.query(
                Comparison.session_id,
                func.count(Comparison.id),
                func.max(Comparison.created_at),
            )
            .filter(Comparison.user_id.is_(None), Comparison.session_id.isnot(None))
            .group_by(Comparison.session_id)
            .all()
        )

        voters = [
            {
                "identifier": identifier,
                "user_type": user_type,
                "comparisons_count": int(count),
                "last_active": last_active,
            }
            for user_type, rows in (("registered", registered), ("anonymous", anonymous))
            for identifier, count, last_active in rows
        ]
        voters.sort(
            key=lambda v: (v["comparisons_count"], v["last_active"]), reverse=True
        )
        return voters[:limit]


comparison = CRUDComparison(Comparison)
