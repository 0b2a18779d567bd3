# app/models/referral.py
import uuid
from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.sql import func
from app.db.base_class import Base


class Referral(Base):
    __tablename__ = "referrals"

    id = Column(
        String, primary_key=True, default=lambda: f"ref_{uuid.uuid4().hex[:12]}"
    )
    referrer_id = Column(String, nullable=False, index=True)
    # A user can be referred only once
    referred_id = Column(String, nullable=False, unique=True)
    referral_code = Column(String(16), nullable=False)

    bonus_paid = Column(Boolean, nullable=False, default=False, server_default="false")
    bonus_paid_at = Column(DateTime(timezone=True), nullable=True)
    # Deal whose delivery paid the bonus
    bonus_deal_id = Column(String, nullable=True, index=True)

    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
