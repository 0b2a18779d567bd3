# app/models/gps_location.py
import uuid
from sqlalchemy import Column, String, Float, DateTime, ForeignKey, Index
from sqlalchemy.sql import func
from app.db.base_class import Base


class GpsLocation(Base):
    __tablename__ = "gps_locations"

    id = Column(
        String, primary_key=True, default=lambda: f"gps_{uuid.uuid4().hex[:12]}"
    )
    deal_id = Column(
        String, ForeignKey("deals.id", ondelete="CASCADE"), nullable=False
    )
    carrier_id = Column(String, nullable=False)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    accuracy = Column(Float, nullable=True)  # meters
    speed = Column(Float, nullable=True)  # m/s
    heading = Column(Float, nullable=True)  # degrees

    recorded_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_gps_locations_deal_recorded", "deal_id", "recorded_at"),
    )
