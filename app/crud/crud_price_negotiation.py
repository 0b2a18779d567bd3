# app/crud/crud_price_negotiation.py
"""
Price negotiation workflow: Propose / Accept / Reject.

Accept runs as one transaction with the order and negotiation rows locked,
so a negotiation, its response and the order's deals never disagree on price
and at most one negotiation per order is ever accepted.
"""
import logging
from typing import List, Optional, Set

from sqlalchemy.orm import Session

from app.core.exceptions import (
    DomainValidationError,
    InvalidTransitionError,
    NegotiationConflictError,
    NotFoundError,
    PermissionDeniedError,
)
from app.models.deal import Deal
from app.models.order import Order
from app.models.price_negotiation import PriceNegotiation
from app.models.response import Response
from app.schemas.negotiation import NegotiationCreate
from app.utils.negotiation_ledger import NegotiationLedger

logger = logging.getLogger(__name__)

# Valid state transitions for PriceNegotiation
VALID_NEGOTIATION_TRANSITIONS = {
    "pending": {"accepted", "rejected"},
    "accepted": set(),  # Terminal state
    "rejected": set(),  # Terminal state
}

NEGOTIABLE_ORDER_STATUSES = {"open", "in_progress"}


def get(db: Session, negotiation_id: str) -> Optional[PriceNegotiation]:
    return (
        db.query(PriceNegotiation).filter(PriceNegotiation.id == negotiation_id).first()
    )


def get_multi_by_order(db: Session, order_id: str) -> List[PriceNegotiation]:
    """Newest first."""
    return (
        db.query(PriceNegotiation)
        .filter(PriceNegotiation.order_id == order_id)
        .order_by(PriceNegotiation.created_at.desc(), PriceNegotiation.id.desc())
        .all()
    )


def get_ledger(db: Session, order_id: str) -> NegotiationLedger:
    return NegotiationLedger.from_rows(order_id, get_multi_by_order(db, order_id))


def _carrier_ids(db: Session, order_id: str) -> Set[str]:
    rows = db.query(Response.carrier_id).filter(Response.order_id == order_id).all()
    return {row.carrier_id for row in rows}


def ensure_party(db: Session, order: Order, user_id: str) -> None:
    """The order's client or a carrier that has responded to it."""
    if user_id != order.client_id and user_id not in _carrier_ids(db, order.id):
        raise PermissionDeniedError("Not a party to this order's negotiation")


def counterparty_ids(db: Session, negotiation: PriceNegotiation, order: Order) -> Set[str]:
    """Who may answer a proposal: the carrier side for a client proposal, else the client."""
    if negotiation.proposed_by == order.client_id:
        if negotiation.response_id:
            response = db.get(Response, negotiation.response_id)
            return {response.carrier_id} if response else set()
        return _carrier_ids(db, order.id)
    return {order.client_id}


def _ensure_counterparty(
    db: Session, negotiation: PriceNegotiation, order: Order, user_id: str
) -> None:
    if user_id == negotiation.proposed_by or user_id not in counterparty_ids(
        db, negotiation, order
    ):
        raise PermissionDeniedError("A proposal can only be answered by the other party")


def _lock_for_transition(db: Session, negotiation_id: str):
    negotiation = get(db, negotiation_id)
    if not negotiation:
        raise NotFoundError("Negotiation", negotiation_id)

    # Order first, then the negotiation row, so concurrent accepts on the
    # same order serialize on the same lock.
    order = (
        db.query(Order)
        .filter(Order.id == negotiation.order_id)
        .with_for_update()
        .one()
    )
    negotiation = (
        db.query(PriceNegotiation)
        .filter(PriceNegotiation.id == negotiation_id)
        .with_for_update()
        .populate_existing()
        .one()
    )
    return order, negotiation


def _validate_transition(negotiation: PriceNegotiation, new_status: str) -> None:
    allowed = VALID_NEGOTIATION_TRANSITIONS.get(negotiation.status, set())
    if new_status not in allowed:
        raise InvalidTransitionError("Negotiation", negotiation.status, new_status)


def propose(
    db: Session, *, order_id: str, proposer_id: str, obj_in: NegotiationCreate
) -> PriceNegotiation:
    if obj_in.proposed_price <= 0:
        raise DomainValidationError("Proposed price must be positive")

    order = db.query(Order).filter(Order.id == order_id).with_for_update().first()
    if not order:
        raise NotFoundError("Order", order_id)
    if order.status not in NEGOTIABLE_ORDER_STATUSES:
        raise DomainValidationError(
            f"Order {order_id} is {order.status}; negotiation is closed"
        )
    ensure_party(db, order, proposer_id)

    if obj_in.response_id:
        response = db.get(Response, obj_in.response_id)
        if not response or response.order_id != order_id:
            raise DomainValidationError(
                f"Response {obj_in.response_id} does not belong to order {order_id}"
            )
        if proposer_id != order.client_id and response.carrier_id != proposer_id:
            raise PermissionDeniedError("Carriers can only negotiate on their own response")

    ledger = get_ledger(db, order_id)
    if not ledger.can_propose(proposer_id):
        if ledger.accepted is not None:
            raise NegotiationConflictError(
                f"A price for order {order_id} has already been agreed",
                details={"accepted_negotiation_id": ledger.accepted.id},
            )
        raise NegotiationConflictError(
            "Wait for the other party to answer your last proposal",
            details={"latest_negotiation_id": ledger.latest.id},
        )

    negotiation = PriceNegotiation(
        order_id=order_id,
        response_id=obj_in.response_id,
        proposed_by=proposer_id,
        proposed_price=obj_in.proposed_price,
        message=obj_in.message,
        status="pending",
    )
    db.add(negotiation)
    db.commit()
    db.refresh(negotiation)
    logger.info(
        f"Negotiation {negotiation.id} on order {order_id}: "
        f"{proposer_id} proposed {obj_in.proposed_price}"
    )
    return negotiation


def accept(db: Session, *, negotiation_id: str, user_id: str) -> PriceNegotiation:
    """
    Accept a pending proposal. In one transaction:
    negotiation -> accepted, linked response price and every deal's
    agreed_price <- proposed price. Any failure rolls the whole unit back.
    """
    try:
        order, negotiation = _lock_for_transition(db, negotiation_id)
        _ensure_counterparty(db, negotiation, order, user_id)
        _validate_transition(negotiation, "accepted")

        already_accepted = (
            db.query(PriceNegotiation)
            .filter(
                PriceNegotiation.order_id == order.id,
                PriceNegotiation.status == "accepted",
                PriceNegotiation.id != negotiation.id,
            )
            .first()
        )
        if already_accepted:
            raise NegotiationConflictError(
                f"Order {order.id} already has an accepted price",
                details={"accepted_negotiation_id": already_accepted.id},
            )

        price = negotiation.proposed_price
        negotiation.status = "accepted"

        if negotiation.response_id:
            response = db.get(Response, negotiation.response_id)
            if response:
                response.price = price

        db.query(Deal).filter(Deal.order_id == order.id).update(
            {Deal.agreed_price: price}, synchronize_session="fetch"
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(negotiation)
    logger.info(
        f"Negotiation {negotiation.id} accepted by {user_id} at {negotiation.proposed_price}"
    )
    return negotiation


def reject(db: Session, *, negotiation_id: str, user_id: str) -> PriceNegotiation:
    """pending -> rejected. Prices are left untouched."""
    try:
        order, negotiation = _lock_for_transition(db, negotiation_id)
        _ensure_counterparty(db, negotiation, order, user_id)
        _validate_transition(negotiation, "rejected")
        negotiation.status = "rejected"
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(negotiation)
    logger.info(f"Negotiation {negotiation.id} rejected by {user_id}")
    return negotiation
