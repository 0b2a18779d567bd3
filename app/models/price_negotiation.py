# app/models/price_negotiation.py
import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Text, Integer, DateTime, ForeignKey, Index, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.db.base_class import Base


class PriceNegotiation(Base):
    __tablename__ = "price_negotiations"

    id = Column(
        String, primary_key=True, default=lambda: f"neg_{uuid.uuid4().hex[:12]}"
    )
    order_id = Column(
        String, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    response_id = Column(
        String, ForeignKey("responses.id", ondelete="SET NULL"), nullable=True
    )
    proposed_by = Column(String, nullable=False)
    proposed_price = Column(Integer, nullable=False)
    message = Column(Text, nullable=True)
    status = Column(String, nullable=False, default="pending", server_default="pending")
    # Values: 'pending', 'accepted', 'rejected'

    # Microsecond resolution from the app clock keeps newest-first ordering stable
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    # Relationships
    order = relationship("Order", back_populates="negotiations")
    response = relationship("Response")

    __table_args__ = (
        Index("ix_price_negotiations_order_created", "order_id", "created_at"),
        # At most one accepted price per order
        Index(
            "uq_price_negotiations_one_accepted",
            "order_id",
            unique=True,
            postgresql_where=text("status = 'accepted'"),
            sqlite_where=text("status = 'accepted'"),
        ),
    )
