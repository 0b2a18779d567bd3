# app/api/v1/endpoints/negotiations.py
"""
Price negotiation: list / propose / accept / reject, plus a server-sent
event stream of the order's negotiation feed.
"""
import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from app import crud
from app.api import deps
from app.db.session import get_db
from app.crud import crud_price_negotiation
from app.schemas.negotiation import Negotiation, NegotiationCreate, NegotiationList
from app.schemas.token import TokenPayload
from app.services.negotiation_feed import (
    NegotiationFeedConsumer,
    publish_negotiation_event,
    stream_order_events,
)
from app.utils import notifications

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Negotiations"])


@router.get("/orders/{order_id}/negotiations", response_model=NegotiationList)
def list_negotiations(
    order_id: str,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """Newest first, with the caller's can_propose computed from the same ledger the feed uses."""
    order = crud.order.get_or_404(db, order_id)
    crud_price_negotiation.ensure_party(db, order, current_user.sub)

    rows = crud_price_negotiation.get_multi_by_order(db, order_id)
    ledger = crud_price_negotiation.get_ledger(db, order_id)
    accepted = ledger.accepted
    return {
        "negotiations": rows,
        "can_propose": ledger.can_propose(current_user.sub),
        "accepted_price": accepted.proposed_price if accepted else None,
    }


@router.post(
    "/orders/{order_id}/negotiations",
    response_model=Negotiation,
    status_code=status.HTTP_201_CREATED,
)
def propose_price(
    order_id: str,
    negotiation_in: NegotiationCreate,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    negotiation = crud_price_negotiation.propose(
        db, order_id=order_id, proposer_id=current_user.sub, obj_in=negotiation_in
    )
    publish_negotiation_event(negotiation, "negotiation.created")

    recipients = crud_price_negotiation.counterparty_ids(db, negotiation, negotiation.order)
    notifications.notify_new_proposal(db, negotiation=negotiation, recipient_ids=recipients)
    return negotiation


@router.post("/negotiations/{negotiation_id}/accept", response_model=Negotiation)
def accept_negotiation(
    negotiation_id: str,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    negotiation = crud_price_negotiation.accept(
        db, negotiation_id=negotiation_id, user_id=current_user.sub
    )
    publish_negotiation_event(negotiation, "negotiation.updated")
    notifications.notify_proposal_answered(db, negotiation=negotiation)
    return negotiation


@router.post("/negotiations/{negotiation_id}/reject", response_model=Negotiation)
def reject_negotiation(
    negotiation_id: str,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    negotiation = crud_price_negotiation.reject(
        db, negotiation_id=negotiation_id, user_id=current_user.sub
    )
    publish_negotiation_event(negotiation, "negotiation.updated")
    notifications.notify_proposal_answered(db, negotiation=negotiation)
    return negotiation


@router.get("/orders/{order_id}/negotiations/stream")
def stream_negotiations(
    order_id: str,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    order = crud.order.get_or_404(db, order_id)
    crud_price_negotiation.ensure_party(db, order, current_user.sub)

    ledger = crud_price_negotiation.get_ledger(db, order_id)
    snapshot = [
        Negotiation.model_validate(row).model_dump(mode="json")
        for row in crud_price_negotiation.get_multi_by_order(db, order_id)
    ]
    consumer = NegotiationFeedConsumer(ledger, current_user.sub)
    return StreamingResponse(
        stream_order_events(consumer, snapshot),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
