# app/models/partner.py
import uuid
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.db.base_class import Base


class PartnerApiKey(Base):
    __tablename__ = "partner_api_keys"

    id = Column(
        String, primary_key=True, default=lambda: f"pak_{uuid.uuid4().hex[:12]}"
    )
    # Orders created through the key belong to this user
    user_id = Column(String, nullable=False, index=True)
    api_key = Column(String(128), nullable=False, unique=True, index=True)
    name = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, server_default="true")
    request_count = Column(Integer, nullable=False, default=0, server_default="0")
    last_used_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    webhook = relationship(
        "PartnerWebhook", back_populates="partner", uselist=False, cascade="all, delete-orphan"
    )


class PartnerWebhook(Base):
    __tablename__ = "partner_webhooks"

    id = Column(
        String, primary_key=True, default=lambda: f"pwh_{uuid.uuid4().hex[:12]}"
    )
    partner_id = Column(
        String,
        ForeignKey("partner_api_keys.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    url = Column(String(2000), nullable=False)
    events = Column(JSON, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True, server_default="true")

    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    partner = relationship("PartnerApiKey", back_populates="webhook")
