# app/models/subscription.py
import uuid
from sqlalchemy import Column, String, Text, Integer, Boolean, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.db.base_class import Base


class SubscriptionPlan(Base):
    __tablename__ = "subscription_plans"

    id = Column(
        String, primary_key=True, default=lambda: f"pln_{uuid.uuid4().hex[:12]}"
    )
    name = Column(String, nullable=False, unique=True)
    display_name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    price_monthly = Column(Integer, nullable=False)  # so'm
    price_yearly = Column(Integer, nullable=True)
    features = Column(JSON, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, server_default="true")

    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class UserSubscription(Base):
    __tablename__ = "user_subscriptions"

    id = Column(
        String, primary_key=True, default=lambda: f"sub_{uuid.uuid4().hex[:12]}"
    )
    user_id = Column(String, nullable=False, index=True)
    plan_id = Column(String, ForeignKey("subscription_plans.id"), nullable=False)
    status = Column(String, nullable=False, default="pending", server_default="pending")
    # Values: 'pending', 'active', 'cancelled'
    current_period_start = Column(DateTime(timezone=True), nullable=True)
    current_period_end = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    plan = relationship("SubscriptionPlan")


class PaymentTransaction(Base):
    __tablename__ = "payment_transactions"

    id = Column(
        String, primary_key=True, default=lambda: f"ptx_{uuid.uuid4().hex[:12]}"
    )
    user_id = Column(String, nullable=False, index=True)
    subscription_id = Column(
        String, ForeignKey("user_subscriptions.id"), nullable=True, index=True
    )
    amount = Column(Integer, nullable=False)  # so'm
    currency = Column(String(3), nullable=False, default="UZS", server_default="UZS")
    provider = Column(String(20), nullable=False)  # click | payme
    provider_transaction_id = Column(String, nullable=True, index=True)
    status = Column(String, nullable=False, default="pending", server_default="pending")
    # Values: 'pending', 'completed', 'refunded', 'failed'
    transaction_metadata = Column(JSON, nullable=True)

    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    subscription = relationship("UserSubscription")
