# app/models/deal.py
import uuid
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.db.base_class import Base


class Deal(Base):
    __tablename__ = "deals"

    id = Column(
        String, primary_key=True, default=lambda: f"dea_{uuid.uuid4().hex[:12]}"
    )
    order_id = Column(String, ForeignKey("orders.id"), nullable=False, index=True)
    client_id = Column(String, nullable=False, index=True)
    carrier_id = Column(String, nullable=False, index=True)

    agreed_price = Column(Integer, nullable=False)
    status = Column(String, nullable=False, default="pending", server_default="pending")
    # Values: 'pending', 'accepted', 'in_transit', 'delivered', 'cancelled'
    proof_photo_url = Column(String, nullable=True)

    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    # Relationships
    order = relationship("Order", back_populates="deals")
    ratings = relationship("Rating", back_populates="deal", cascade="all, delete-orphan")

    def is_participant(self, user_id: str) -> bool:
        return user_id in (self.client_id, self.carrier_id)

    def counterparty_of(self, user_id: str) -> str:
        return self.carrier_id if user_id == self.client_id else self.client_id
