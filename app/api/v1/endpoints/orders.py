# app/api/v1/endpoints/orders.py
"""Cargo orders and carrier responses."""
import logging
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from app import crud
from app.api import deps
from app.db.session import get_db
from app.core.exceptions import PermissionDeniedError
from app.crud import crud_deal
from app.schemas.deal import Deal
from app.schemas.order import Order, OrderCreate, OrderStatus
from app.schemas.response import Response, ResponseCreate
from app.schemas.token import TokenPayload
from app.services import partner_webhooks
from app.utils import notifications

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Orders"])


@router.post("/orders", response_model=Order, status_code=status.HTTP_201_CREATED)
def create_order(
    order_in: OrderCreate,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_client),
):
    order = crud.order.create_with_client(db, obj_in=order_in, client_id=current_user.sub)
    notifications.notify_new_order(db, order=order)
    return order


@router.get("/orders/mine", response_model=List[Order])
def list_my_orders(
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    return crud.order.get_multi_by_client(
        db,
        client_id=current_user.sub,
        status=status_filter.value if status_filter else None,
    )


@router.get("/orders/open", response_model=List[Order])
def list_open_orders(
    cargo_type: Optional[str] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """Order board for carriers."""
    return crud.order.get_open(db, cargo_type=cargo_type, skip=skip, limit=limit)


@router.get("/orders/{order_id}", response_model=Order)
def get_order(
    order_id: str,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    return crud.order.get_or_404(db, order_id)


@router.post("/orders/{order_id}/cancel", response_model=Order)
def cancel_order(
    order_id: str,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    return crud.order.cancel(db, order_id=order_id, client_id=current_user.sub)


# ── Responses ─────────────────────────────────────────────────────────

@router.post(
    "/orders/{order_id}/responses",
    response_model=Response,
    status_code=status.HTTP_201_CREATED,
)
def respond_to_order(
    order_id: str,
    response_in: ResponseCreate,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_carrier),
):
    order = crud.order.get_or_404(db, order_id)
    response = crud.response.create_for_order(
        db, order=order, carrier_id=current_user.sub, obj_in=response_in
    )
    notifications.notify_new_response(db, order=order, response=response)
    return response


@router.get("/orders/{order_id}/responses", response_model=List[Response])
def list_order_responses(
    order_id: str,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    order = crud.order.get_or_404(db, order_id)
    if order.client_id != current_user.sub:
        raise PermissionDeniedError("Only the order's client can see its responses")
    return crud.response.get_multi_by_order(db, order_id=order_id)


@router.get("/responses/mine", response_model=List[Response])
def list_my_responses(
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    return crud.response.get_multi_by_carrier(db, carrier_id=current_user.sub)


@router.post(
    "/responses/{response_id}/accept",
    response_model=Deal,
    status_code=status.HTTP_201_CREATED,
)
def accept_response(
    response_id: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_client),
):
    """Client picks a carrier: creates the deal at the response price."""
    response = crud.response.get_or_404(db, response_id)
    deal = crud_deal.create_from_response(db, response=response, client_id=current_user.sub)
    notifications.notify_deal_created(db, deal=deal)
    partner_webhooks.queue_event(
        db,
        background_tasks,
        user_id=deal.client_id,
        event="order.accepted",
        data={
            "order_id": deal.order_id,
            "deal_id": deal.id,
            "carrier_id": deal.carrier_id,
            "agreed_price": deal.agreed_price,
        },
    )
    return deal
