# app/models/order.py
import uuid
from sqlalchemy import Column, String, Text, Integer, Float, DateTime, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.db.base_class import Base


class Order(Base):
    __tablename__ = "orders"

    id = Column(
        String, primary_key=True, default=lambda: f"ord_{uuid.uuid4().hex[:12]}"
    )
    client_id = Column(String, nullable=False, index=True)

    # Cargo (immutable after creation)
    cargo_type = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    weight = Column(Float, nullable=True)  # kg
    length = Column(Float, nullable=True)
    width = Column(Float, nullable=True)
    height = Column(Float, nullable=True)
    photo_urls = Column(JSON, nullable=True)

    # Route
    pickup_address = Column(String, nullable=False)
    pickup_lat = Column(Float, nullable=True)
    pickup_lng = Column(Float, nullable=True)
    delivery_address = Column(String, nullable=False)
    delivery_lat = Column(Float, nullable=True)
    delivery_lng = Column(Float, nullable=True)
    pickup_date = Column(DateTime(timezone=True), nullable=False)

    client_price = Column(Integer, nullable=True)  # desired price, so'm
    status = Column(String, nullable=False, default="open", server_default="open")
    # Values: 'open', 'in_progress', 'completed', 'cancelled'

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
    responses = relationship(
        "Response", back_populates="order", cascade="all, delete-orphan"
    )
    negotiations = relationship(
        "PriceNegotiation", back_populates="order", cascade="all, delete-orphan"
    )
    deals = relationship("Deal", back_populates="order")
