from sqlalchemy import Column, String, ForeignKey, DateTime, Float, Boolean, Index
from sqlalchemy.orm import relationship
from app.db.base_class import Base, utcnow
import uuid


class Comparison(Base):
    """One pairwise judgment. Written once, never updated or deleted."""

    __tablename__ = "comparisons"

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    item1_id = Column(String, ForeignKey("items.id"), nullable=False)
    item2_id = Column(String, ForeignKey("items.id"), nullable=False)
    winner_id = Column(String, ForeignKey("items.id"), nullable=False)

    # Ratings before and after the update
    item1_rating_before = Column(Float, nullable=False)
    item2_rating_before = Column(Float, nullable=False)
    item1_rating_after = Column(Float, nullable=False)
    item2_rating_after = Column(Float, nullable=False)

    rating_difference = Column(Float, nullable=False)  # |before1 - before2|
    was_upset = Column(Boolean, default=False, nullable=False)

    # Opaque voter identity, both optional (anonymous voting)
    user_id = Column(String, nullable=True)
    session_id = Column(String, nullable=True)

    # Client-supplied key so a retried submission is not counted twice
    idempotency_key = Column(String, unique=True, nullable=True)

    # Set application-side: microsecond precision keeps newest-first ordering stable
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    item1 = relationship("Item", foreign_keys=[item1_id])
    item2 = relationship("Item", foreign_keys=[item2_id])
    winner = relationship("Item", foreign_keys=[winner_id])

    # Bounded "last N comparisons for this voter" lookups
    __table_args__ = (
        Index("ix_comparisons_session_created", "session_id", "created_at"),
        Index("ix_comparisons_user_created", "user_id", "created_at"),
        Index("ix_comparisons_created_at", "created_at"),
    )
