# app/models/rating.py
import uuid
from sqlalchemy import (
    Column, String, Text, Integer, DateTime, ForeignKey, UniqueConstraint, CheckConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.db.base_class import Base


class Rating(Base):
    __tablename__ = "ratings"

    id = Column(
        String, primary_key=True, default=lambda: f"rat_{uuid.uuid4().hex[:12]}"
    )
    deal_id = Column(
        String, ForeignKey("deals.id", ondelete="CASCADE"), nullable=False, index=True
    )
    rater_id = Column(String, nullable=False)
    rated_id = Column(String, nullable=False, index=True)
    score = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)

    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    # Relationships
    deal = relationship("Deal", back_populates="ratings")

    __table_args__ = (
        UniqueConstraint("deal_id", "rater_id", name="uq_rating_deal_rater"),
        CheckConstraint("score BETWEEN 1 AND 5", name="ck_rating_score_range"),
    )
