# app/models/security_event.py
import uuid
from sqlalchemy import Column, String, Text, DateTime, JSON
from sqlalchemy.sql import func
from app.db.base_class import Base


class SecurityEvent(Base):
    """Immutable audit trail for payments, KYC and account linking."""

    __tablename__ = "security_events"

    id = Column(
        String, primary_key=True, default=lambda: f"sev_{uuid.uuid4().hex[:12]}"
    )
    user_id = Column(String, nullable=True, index=True)
    event_type = Column(String(100), nullable=False, index=True)
    # e.g. 'payment_initiated', 'payment_completed', 'webhook_verification_failed',
    #      'kyc_biometric_verification', 'telegram_linked'
    severity = Column(String(20), nullable=False, default="info", server_default="info")  # info | warning | critical
    description = Column(Text, nullable=True)
    ip_address = Column(String(45), nullable=True)
    event_metadata = Column(JSON, nullable=True)

    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
