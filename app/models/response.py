# app/models/response.py
import uuid
from sqlalchemy import (
    Column, String, Text, Integer, Boolean, DateTime, ForeignKey, UniqueConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.db.base_class import Base


class Response(Base):
    """A carrier's bid against an order."""

    __tablename__ = "responses"

    id = Column(
        String, primary_key=True, default=lambda: f"rsp_{uuid.uuid4().hex[:12]}"
    )
    order_id = Column(
        String, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    carrier_id = Column(String, nullable=False, index=True)

    price = Column(Integer, nullable=False)
    delivery_time = Column(String, nullable=True)  # free-form estimate, e.g. "2 days"
    comment = Column(Text, nullable=True)
    is_accepted = Column(Boolean, nullable=False, default=False, server_default="false")

    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    # Relationships
    order = relationship("Order", back_populates="responses")

    __table_args__ = (
        UniqueConstraint("order_id", "carrier_id", name="uq_response_order_carrier"),
    )
