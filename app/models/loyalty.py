# app/models/loyalty.py
import uuid
from sqlalchemy import (
    Column, String, Text, Integer, Boolean, DateTime, CheckConstraint
)
from sqlalchemy.sql import func
from app.db.base_class import Base


class LoyaltyAccount(Base):
    """Per-user points balance."""

    __tablename__ = "loyalty_points"

    id = Column(
        String, primary_key=True, default=lambda: f"lpt_{uuid.uuid4().hex[:12]}"
    )
    user_id = Column(String, nullable=False, unique=True, index=True)
    balance = Column(Integer, nullable=False, default=0, server_default="0")
    lifetime_earned = Column(Integer, nullable=False, default=0, server_default="0")

    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_loyalty_balance_non_negative"),
    )


class LoyaltyTransaction(Base):
    """Append-only audit log of balance changes."""

    __tablename__ = "loyalty_transactions"

    id = Column(
        String, primary_key=True, default=lambda: f"ltx_{uuid.uuid4().hex[:12]}"
    )
    user_id = Column(String, nullable=False, index=True)
    amount = Column(Integer, nullable=False)  # signed: +earned, -spent
    type = Column(String, nullable=False)  # 'earned' | 'spent'
    reason = Column(String, nullable=False)
    reference_id = Column(String, nullable=True)

    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class LoyaltyReward(Base):
    __tablename__ = "loyalty_rewards"

    id = Column(
        String, primary_key=True, default=lambda: f"rwd_{uuid.uuid4().hex[:12]}"
    )
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    points_cost = Column(Integer, nullable=False)
    discount_percent = Column(Integer, nullable=True)
    discount_amount = Column(Integer, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, server_default="true")

    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
