from sqlalchemy import Column, String, DateTime, Integer, Float, Index, func
from app.db.base_class import Base, utcnow
import uuid


class Item(Base):
    __tablename__ = "items"

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    title = Column(String, nullable=False)
    description = Column(String, nullable=True)
    image_url = Column(String, nullable=True)  # Items without an image are never selected

    # Elo rating state
    rating = Column(Float, default=1500.0, nullable=False)
    comparison_count = Column(Integer, default=0, nullable=False)  # == wins + losses
    wins = Column(Integer, default=0, nullable=False)
    losses = Column(Integer, default=0, nullable=False)
    skip_count = Column(Integer, default=0, nullable=False)

    # Derived scores, recomputed after every vote or skip
    familiarity_score = Column(Float, default=0.0, nullable=False)  # 0-100
    rating_confidence = Column(Float, default=0.0, nullable=False)  # 0-1
    last_compared_at = Column(DateTime(timezone=True), nullable=True)

    # History
    peak_rating = Column(Float, nullable=True)
    peak_rating_date = Column(DateTime(timezone=True), nullable=True)
    current_streak_wins = Column(Integer, default=0, nullable=False)
    current_streak_losses = Column(Integer, default=0, nullable=False)
    longest_win_streak = Column(Integer, default=0, nullable=False)
    upset_win_count = Column(Integer, default=0, nullable=False)
    first_vote_date = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        # Titles are unique regardless of case
        Index("uq_items_title_lower", func.lower(title), unique=True),
        Index("ix_items_rating", "rating"),
        Index("ix_items_comparison_count", "comparison_count"),
    )
