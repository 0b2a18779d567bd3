# app/crud/crud_deal.py
import logging
from typing import List, Optional
from datetime import datetime, timezone

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import (
    DomainValidationError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
)
from app.crud import crud_loyalty, crud_referral
from app.crud.crud_order import order as crud_order
from app.models.deal import Deal
from app.models.message import Message
from app.models.response import Response

logger = logging.getLogger(__name__)

# Valid state transitions for Deal
VALID_DEAL_TRANSITIONS = {
    "pending": {"accepted", "cancelled"},
    "accepted": {"in_transit", "cancelled"},
    "in_transit": {"delivered"},
    "delivered": set(),  # Terminal state
    "cancelled": set(),  # Terminal state
}

# Statuses only the carrier may set; cancellation is open to both participants
CARRIER_ONLY_STATUSES = {"accepted", "in_transit", "delivered"}

STATUS_MESSAGES = {
    "accepted": "Carrier accepted the order",
    "in_transit": "Cargo is in transit",
    "delivered": "Cargo delivered",
    "cancelled": "Deal cancelled",
}


def validate_transition(old_status: str, new_status: str) -> bool:
    """
    Validate that a status transition is allowed.
    Returns True if valid, False otherwise.
    """
    if old_status not in VALID_DEAL_TRANSITIONS:
        logger.warning(f"Unknown status: {old_status}")
        return False

    if new_status not in VALID_DEAL_TRANSITIONS[old_status]:
        logger.warning(f"Invalid transition: {old_status} -> {new_status}")
        return False

    return True


def get(db: Session, deal_id: str) -> Optional[Deal]:
    return db.query(Deal).filter(Deal.id == deal_id).first()


def get_for_participant(db: Session, deal_id: str, user_id: str) -> Deal:
    """Load a deal and make sure the caller is one of its two parties."""
    deal = get(db, deal_id)
    if not deal:
        raise NotFoundError("Deal", deal_id)
    if not deal.is_participant(user_id):
        raise PermissionDeniedError("Not a participant of this deal")
    return deal


def get_multi_for_user(
    db: Session, user_id: str, status: Optional[str] = None
) -> List[Deal]:
    query = db.query(Deal).filter(
        or_(Deal.client_id == user_id, Deal.carrier_id == user_id)
    )
    if status:
        query = query.filter(Deal.status == status)
    return query.order_by(Deal.created_at.desc()).all()


def get_multi_by_order(db: Session, order_id: str) -> List[Deal]:
    return db.query(Deal).filter(Deal.order_id == order_id).all()


def count_delivered_for_carrier(db: Session, carrier_id: str) -> int:
    return (
        db.query(Deal)
        .filter(Deal.carrier_id == carrier_id, Deal.status == "delivered")
        .count()
    )


def create_from_response(db: Session, *, response: Response, client_id: str) -> Deal:
    """
    Accept a carrier's response: one transaction creates the pending deal at
    the response price, flags the response, moves the order to in_progress
    and leaves a system message in the deal chat.
    """
    order = response.order
    if order.client_id != client_id:
        raise PermissionDeniedError("Only the order's client can accept responses")
    if response.is_accepted:
        raise DomainValidationError(f"Response {response.id} is already accepted")

    try:
        crud_order.set_status(order, "in_progress")
        deal = Deal(
            order_id=order.id,
            client_id=order.client_id,
            carrier_id=response.carrier_id,
            agreed_price=response.price,
            status="pending",
        )
        db.add(deal)
        response.is_accepted = True
        db.flush()

        db.add(
            Message(
                deal_id=deal.id,
                sender_id=client_id,
                content=f"Deal created at {response.price} so'm",
                is_system=True,
            )
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(deal)
    logger.info(f"Deal {deal.id} created from response {response.id}")
    return deal


def transition_status(
    db: Session,
    *,
    deal: Deal,
    new_status: str,
    actor_id: str,
    proof_photo_url: Optional[str] = None,
) -> Deal:
    """
    Validate and execute a deal status transition. Delivery also completes
    the order, credits loyalty points to both parties and pays any pending
    referral bonus in the same commit.
    """
    if not deal.is_participant(actor_id):
        raise PermissionDeniedError("Not a participant of this deal")
    if new_status in CARRIER_ONLY_STATUSES and actor_id != deal.carrier_id:
        raise PermissionDeniedError(f"Only the carrier can set status '{new_status}'")

    old_status = deal.status
    if not validate_transition(old_status, new_status):
        raise InvalidTransitionError("Deal", old_status, new_status)

    now = datetime.now(timezone.utc)
    try:
        deal.status = new_status
        if new_status == "in_transit" and not deal.started_at:
            deal.started_at = now
        elif new_status == "delivered":
            deal.completed_at = now
            if proof_photo_url:
                deal.proof_photo_url = proof_photo_url
            crud_order.set_status(deal.order, "completed")
            for user_id in (deal.carrier_id, deal.client_id):
                crud_loyalty.earn(
                    db,
                    user_id=user_id,
                    amount=settings.LOYALTY_POINTS_DEAL_DELIVERED,
                    reason="Deal delivered",
                    reference_id=deal.id,
                    commit=False,
                )
                crud_referral.pay_bonus(db, referred_id=user_id, deal_id=deal.id)
        elif new_status == "cancelled" and deal.order.status == "in_progress":
            crud_order.set_status(deal.order, "cancelled")

        db.add(
            Message(
                deal_id=deal.id,
                sender_id=actor_id,
                content=STATUS_MESSAGES[new_status],
                is_system=True,
            )
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(deal)
    logger.info(f"Deal {deal.id}: {old_status} -> {new_status} by {actor_id}")
    return deal
