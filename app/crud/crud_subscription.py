# app/crud/crud_subscription.py
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import DomainValidationError, NotFoundError
from app.models.subscription import SubscriptionPlan, UserSubscription, PaymentTransaction

logger = logging.getLogger(__name__)

# Upper bound on a single charge, so'm
MAX_PAYMENT_AMOUNT = 100_000_000

BILLING_PERIOD_DAYS = {"monthly": 30, "yearly": 365}


def get_active_plans(db: Session) -> List[SubscriptionPlan]:
    return (
        db.query(SubscriptionPlan)
        .filter(SubscriptionPlan.is_active == True)
        .order_by(SubscriptionPlan.price_monthly.asc())
        .all()
    )


def get_active_plan(db: Session, plan_id: str) -> SubscriptionPlan:
    plan = (
        db.query(SubscriptionPlan)
        .filter(SubscriptionPlan.id == plan_id, SubscriptionPlan.is_active == True)
        .first()
    )
    if not plan:
        raise NotFoundError("Plan", plan_id)
    return plan


def plan_amount(plan: SubscriptionPlan, billing_period: str) -> int:
    amount = plan.price_monthly if billing_period == "monthly" else plan.price_yearly
    if not amount or amount <= 0 or amount > MAX_PAYMENT_AMOUNT:
        raise DomainValidationError("Invalid plan pricing")
    return amount


def get_current_for_user(db: Session, user_id: str) -> Optional[UserSubscription]:
    return (
        db.query(UserSubscription)
        .filter(UserSubscription.user_id == user_id, UserSubscription.status == "active")
        .order_by(UserSubscription.created_at.desc())
        .first()
    )


def create_pending(
    db: Session,
    *,
    user_id: str,
    plan: SubscriptionPlan,
    billing_period: str,
    provider: str,
) -> PaymentTransaction:
    """
    Cancel the user's active subscription and open a pending subscription
    with a pending payment transaction, all in one commit.
    """
    amount = plan_amount(plan, billing_period)
    now = datetime.now(timezone.utc)

    try:
        db.query(UserSubscription).filter(
            UserSubscription.user_id == user_id, UserSubscription.status == "active"
        ).update({UserSubscription.status: "cancelled"}, synchronize_session=False)

        subscription = UserSubscription(
            user_id=user_id,
            plan_id=plan.id,
            status="pending",
            current_period_start=now,
            current_period_end=now + timedelta(days=BILLING_PERIOD_DAYS[billing_period]),
        )
        db.add(subscription)
        db.flush()

        transaction = PaymentTransaction(
            user_id=user_id,
            subscription_id=subscription.id,
            amount=amount,
            currency="UZS",
            provider=provider,
            status="pending",
            transaction_metadata={"plan_name": plan.name, "billing_period": billing_period},
        )
        db.add(transaction)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(transaction)
    return transaction


def get_transaction(db: Session, transaction_id: str) -> Optional[PaymentTransaction]:
    return db.query(PaymentTransaction).filter(PaymentTransaction.id == transaction_id).first()


def get_pending_for_subscription(
    db: Session, subscription_id: str
) -> Optional[PaymentTransaction]:
    return (
        db.query(PaymentTransaction)
        .filter(
            PaymentTransaction.subscription_id == subscription_id,
            PaymentTransaction.status == "pending",
        )
        .first()
    )


def get_subscription(db: Session, subscription_id: str) -> Optional[UserSubscription]:
    return db.query(UserSubscription).filter(UserSubscription.id == subscription_id).first()


def get_by_provider_transaction_id(
    db: Session, provider_transaction_id: str
) -> Optional[PaymentTransaction]:
    return (
        db.query(PaymentTransaction)
        .filter(PaymentTransaction.provider_transaction_id == str(provider_transaction_id))
        .first()
    )


def attach_provider_id(
    db: Session, transaction: PaymentTransaction, provider_transaction_id: str
) -> PaymentTransaction:
    transaction.provider_transaction_id = str(provider_transaction_id)
    db.commit()
    db.refresh(transaction)
    return transaction


def complete(db: Session, transaction: PaymentTransaction) -> PaymentTransaction:
    """Mark paid and activate the subscription it pays for."""
    transaction.status = "completed"
    if transaction.subscription_id:
        subscription = get_subscription(db, transaction.subscription_id)
        if subscription:
            subscription.status = "active"
    db.commit()
    db.refresh(transaction)
    logger.info(f"Payment {transaction.id} completed ({transaction.provider})")
    return transaction


def cancel(
    db: Session, transaction: PaymentTransaction, status: str = "refunded"
) -> PaymentTransaction:
    transaction.status = status
    if transaction.subscription_id:
        subscription = get_subscription(db, transaction.subscription_id)
        if subscription:
            subscription.status = "cancelled"
    db.commit()
    db.refresh(transaction)
    logger.info(f"Payment {transaction.id} {status} ({transaction.provider})")
    return transaction
