# app/crud/crud_referral.py
"""
Referral codes and the referrer's bonus.

The bonus is credited once per referred user, when their first deal is
delivered, inside the delivery transaction.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import DomainValidationError, DuplicateError, NotFoundError
from app.crud import crud_loyalty
from app.models.profile import Profile
from app.models.referral import Referral

logger = logging.getLogger(__name__)


def generate_code(role: str) -> str:
    prefix = "C" if role == "client" else "D"
    return f"{prefix}{uuid.uuid4().hex[:6].upper()}"


def get_by_referred(db: Session, referred_id: str) -> Optional[Referral]:
    return db.query(Referral).filter(Referral.referred_id == referred_id).first()


def list_for_referrer(db: Session, referrer_id: str) -> List[Referral]:
    return (
        db.query(Referral)
        .filter(Referral.referrer_id == referrer_id)
        .order_by(Referral.created_at.desc())
        .all()
    )


def list_paid_for_deal(db: Session, deal_id: str) -> List[Referral]:
    return db.query(Referral).filter(Referral.bonus_deal_id == deal_id).all()


def apply_code(db: Session, *, referred_id: str, code: str) -> Referral:
    code = code.strip().upper()
    referrer = db.query(Profile).filter(Profile.referral_code == code).first()
    if referrer is None:
        raise NotFoundError("Referral code", code)
    if referrer.user_id == referred_id:
        raise DomainValidationError("Cannot use your own referral code")
    if get_by_referred(db, referred_id):
        raise DuplicateError("A referral code was already applied")

    referral = Referral(
        referrer_id=referrer.user_id, referred_id=referred_id, referral_code=code
    )
    db.add(referral)
    db.commit()
    db.refresh(referral)
    logger.info(f"User {referred_id} joined with referral code {code}")
    return referral


def pay_bonus(db: Session, *, referred_id: str, deal_id: str) -> Optional[Referral]:
    """
    Credit the referrer if this user's bonus is still unpaid. Flushes only;
    the caller commits.
    """
    referral = (
        db.query(Referral)
        .filter(Referral.referred_id == referred_id, Referral.bonus_paid == False)
        .with_for_update()
        .first()
    )
    if referral is None:
        return None

    referral.bonus_paid = True
    referral.bonus_paid_at = datetime.now(timezone.utc)
    referral.bonus_deal_id = deal_id
    crud_loyalty.earn(
        db,
        user_id=referral.referrer_id,
        amount=settings.LOYALTY_POINTS_REFERRAL_BONUS,
        reason="Referral bonus",
        reference_id=referral.id,
        commit=False,
    )
    return referral
