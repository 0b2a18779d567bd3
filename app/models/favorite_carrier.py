# app/models/favorite_carrier.py
import uuid
from sqlalchemy import Column, String, Text, DateTime, UniqueConstraint
from sqlalchemy.sql import func
from app.db.base_class import Base


class FavoriteCarrier(Base):
    __tablename__ = "favorite_carriers"

    id = Column(
        String, primary_key=True, default=lambda: f"fav_{uuid.uuid4().hex[:12]}"
    )
    client_id = Column(String, nullable=False, index=True)
    carrier_id = Column(String, nullable=False)
    note = Column(Text, nullable=True)

    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("client_id", "carrier_id", name="uq_favorite_client_carrier"),
    )
