# app/crud/crud_loyalty.py
"""
Loyalty points ledger.

Balances change only through single conditional UPDATE statements, and the
audit row is written in the same transaction as the balance change.
"""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import DomainValidationError, InsufficientPointsError, NotFoundError
from app.models.loyalty import LoyaltyAccount, LoyaltyTransaction, LoyaltyReward

logger = logging.getLogger(__name__)


def get_account(db: Session, user_id: str) -> Optional[LoyaltyAccount]:
    return db.query(LoyaltyAccount).filter(LoyaltyAccount.user_id == user_id).first()


def get_or_create_account(db: Session, user_id: str) -> LoyaltyAccount:
    account = get_account(db, user_id)
    if account is None:
        account = LoyaltyAccount(user_id=user_id, balance=0, lifetime_earned=0)
        db.add(account)
        db.flush()
    return account


def list_transactions(
    db: Session, user_id: str, limit: int = 50
) -> List[LoyaltyTransaction]:
    return (
        db.query(LoyaltyTransaction)
        .filter(LoyaltyTransaction.user_id == user_id)
        .order_by(LoyaltyTransaction.created_at.desc())
        .limit(limit)
        .all()
    )


def list_rewards(db: Session) -> List[LoyaltyReward]:
    return (
        db.query(LoyaltyReward)
        .filter(LoyaltyReward.is_active == True)
        .order_by(LoyaltyReward.points_cost.asc())
        .all()
    )


def earn(
    db: Session,
    *,
    user_id: str,
    amount: int,
    reason: str,
    reference_id: Optional[str] = None,
    commit: bool = True,
) -> LoyaltyTransaction:
    """
    Credit points. With commit=False the caller owns the transaction, which
    lets deal delivery award points in the same unit of work.
    """
    if amount <= 0:
        raise DomainValidationError("Earned amount must be positive")

    get_or_create_account(db, user_id)
    db.query(LoyaltyAccount).filter(LoyaltyAccount.user_id == user_id).update(
        {
            LoyaltyAccount.balance: LoyaltyAccount.balance + amount,
            LoyaltyAccount.lifetime_earned: LoyaltyAccount.lifetime_earned + amount,
        },
        synchronize_session=False,
    )
    tx = LoyaltyTransaction(
        user_id=user_id,
        amount=amount,
        type="earned",
        reason=reason,
        reference_id=reference_id,
    )
    db.add(tx)

    if commit:
        try:
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(tx)
    else:
        db.flush()

    logger.info(f"User {user_id} earned {amount} points: {reason}")
    return tx


def spend(
    db: Session,
    *,
    user_id: str,
    amount: int,
    reason: str,
    reference_id: Optional[str] = None,
) -> LoyaltyTransaction:
    """Debit points. Fails without touching anything if the balance is short."""
    if amount <= 0:
        raise DomainValidationError("Spent amount must be positive")

    updated = (
        db.query(LoyaltyAccount)
        .filter(LoyaltyAccount.user_id == user_id, LoyaltyAccount.balance >= amount)
        .update(
            {LoyaltyAccount.balance: LoyaltyAccount.balance - amount},
            synchronize_session=False,
        )
    )
    if updated == 0:
        db.rollback()
        logger.info(f"User {user_id} cannot spend {amount} points")
        raise InsufficientPointsError(user_id, amount)

    tx = LoyaltyTransaction(
        user_id=user_id,
        amount=-amount,
        type="spent",
        reason=reason,
        reference_id=reference_id,
    )
    db.add(tx)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(tx)

    logger.info(f"User {user_id} spent {amount} points: {reason}")
    return tx


def redeem_reward(db: Session, *, user_id: str, reward_id: str) -> LoyaltyTransaction:
    reward = (
        db.query(LoyaltyReward)
        .filter(LoyaltyReward.id == reward_id, LoyaltyReward.is_active == True)
        .first()
    )
    if not reward:
        raise NotFoundError("Reward", reward_id)

    return spend(
        db,
        user_id=user_id,
        amount=reward.points_cost,
        reason=f"Reward redeemed: {reward.name}",
        reference_id=reward.id,
    )
