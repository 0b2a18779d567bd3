# app/api/v1/endpoints/deals.py
"""Deals between a client and a carrier, and the deal chat."""
import logging
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from app import crud
from app.api import deps
from app.db.session import get_db
from app.core.config import settings
from app.crud import crud_deal, crud_referral
from app.schemas.deal import Deal, DealStatus, DealStatusUpdate
from app.schemas.message import Message, MessageCreate
from app.schemas.token import TokenPayload
from app.services import partner_webhooks
from app.utils import notifications

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/deals", tags=["Deals"])


@router.get("", response_model=List[Deal])
def list_my_deals(
    status_filter: Optional[DealStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    return crud_deal.get_multi_for_user(
        db, current_user.sub, status=status_filter.value if status_filter else None
    )


@router.get("/{deal_id}", response_model=Deal)
def get_deal(
    deal_id: str,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    return crud_deal.get_for_participant(db, deal_id, current_user.sub)


@router.patch("/{deal_id}/status", response_model=Deal)
def update_deal_status(
    deal_id: str,
    status_in: DealStatusUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    deal = crud_deal.get_for_participant(db, deal_id, current_user.sub)
    deal = crud_deal.transition_status(
        db,
        deal=deal,
        new_status=status_in.status.value,
        actor_id=current_user.sub,
        proof_photo_url=status_in.proof_photo_url,
    )

    notifications.notify_deal_status(db, deal=deal, actor_id=current_user.sub)
    events = ["deal.status_changed"] + (["deal.delivered"] if deal.status == "delivered" else [])
    for event in events:
        partner_webhooks.queue_event(
            db,
            background_tasks,
            user_id=deal.client_id,
            event=event,
            data={"deal_id": deal.id, "order_id": deal.order_id, "status": deal.status},
        )
    if deal.status == "delivered":
        for user_id in (deal.carrier_id, deal.client_id):
            notifications.notify_points_earned(
                db,
                user_id=user_id,
                amount=settings.LOYALTY_POINTS_DEAL_DELIVERED,
                reason="Deal delivered",
            )
        for referral in crud_referral.list_paid_for_deal(db, deal.id):
            notifications.notify_points_earned(
                db,
                user_id=referral.referrer_id,
                amount=settings.LOYALTY_POINTS_REFERRAL_BONUS,
                reason="Referral bonus",
            )
    return deal


# ── Chat ──────────────────────────────────────────────────────────────

@router.get("/{deal_id}/messages", response_model=List[Message])
def list_messages(
    deal_id: str,
    skip: int = Query(0, ge=0),
    limit: int = Query(200, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    crud_deal.get_for_participant(db, deal_id, current_user.sub)
    return crud.message.get_multi_by_deal(db, deal_id=deal_id, skip=skip, limit=limit)


@router.post(
    "/{deal_id}/messages", response_model=Message, status_code=status.HTTP_201_CREATED
)
def send_message(
    deal_id: str,
    message_in: MessageCreate,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    deal = crud_deal.get_for_participant(db, deal_id, current_user.sub)
    message = crud.message.create_for_deal(
        db, deal_id=deal_id, sender_id=current_user.sub, obj_in=message_in
    )
    notifications.notify_new_message(db, deal=deal, message=message)
    return message
