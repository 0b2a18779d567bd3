# app/api/v1/endpoints/partner.py
"""
Partner API: external logistics systems read the order board, post orders
on behalf of their account, follow deliveries and register a webhook.

Authenticated with the `X-API-Key` header and rate limited per key.
"""
import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, status
from sqlalchemy.orm import Session

from app import crud
from app.api import deps
from app.db.session import get_db
from app.core.exceptions import NotFoundError
from app.core.limiter import limiter, partner_api_key, PARTNER_RATE
from app.crud import crud_deal, crud_gps_location, crud_partner
from app.models.partner import PartnerApiKey
from app.schemas.order import OrderCreate
from app.schemas.partner import (
    PartnerKey,
    PartnerKeyCreate,
    PartnerOrder,
    PartnerOrderCreate,
    PartnerOrderPage,
    PartnerTracking,
    WebhookEvent,
    WebhookRegister,
    WebhookRegistered,
)
from app.schemas.token import TokenPayload
from app.services import partner_webhooks
from app.utils import notifications

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/partner", tags=["Partner API"])


@router.get("/docs")
def partner_docs():
    """Public summary of the partner API."""
    return {
        "name": "AsLogUz Partner API",
        "version": "1.0",
        "authentication": {"header": "X-API-Key", "description": "Contact admin to get your API key"},
        "rate_limit": PARTNER_RATE,
        "endpoints": {
            "GET /partner/orders": "Open orders (cargo_type, pickup_city, delivery_city, limit<=100, offset)",
            "GET /partner/orders/{order_id}": "One of your orders, or any open order",
            "POST /partner/orders": "Create an order for your account",
            "GET /partner/tracking/{deal_id}": "Status and last known position of your deal",
            "POST /partner/webhooks/register": "Register the webhook URL for your key",
        },
        "webhook_events": [e.value for e in WebhookEvent],
    }


@router.get("/orders", response_model=PartnerOrderPage)
@limiter.limit(PARTNER_RATE, key_func=partner_api_key)
def list_orders(
    request: Request,
    cargo_type: Optional[str] = Query(None, max_length=100),
    pickup_city: Optional[str] = Query(None, max_length=100),
    delivery_city: Optional[str] = Query(None, max_length=100),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    partner: PartnerApiKey = Depends(deps.get_partner_key),
):
    orders, total = crud_partner.list_open_orders(
        db,
        cargo_type=cargo_type,
        pickup_city=pickup_city,
        delivery_city=delivery_city,
        limit=limit,
        offset=offset,
    )
    return PartnerOrderPage(
        orders=[PartnerOrder.model_validate(o) for o in orders],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/orders/{order_id}", response_model=PartnerOrder)
@limiter.limit(PARTNER_RATE, key_func=partner_api_key)
def get_order(
    request: Request,
    order_id: str,
    db: Session = Depends(get_db),
    partner: PartnerApiKey = Depends(deps.get_partner_key),
):
    order = crud.order.get(db, order_id)
    if order is None or (order.status != "open" and order.client_id != partner.user_id):
        raise NotFoundError("Order", order_id)
    return order


@router.post("/orders", response_model=PartnerOrder, status_code=status.HTTP_201_CREATED)
@limiter.limit(PARTNER_RATE, key_func=partner_api_key)
def create_order(
    request: Request,
    order_in: PartnerOrderCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    partner: PartnerApiKey = Depends(deps.get_partner_key),
):
    order = crud.order.create_with_client(
        db, obj_in=OrderCreate(**order_in.model_dump()), client_id=partner.user_id
    )
    logger.info(f"Partner {partner.id} created order {order.id}")
    notifications.notify_new_order(db, order=order)
    partner_webhooks.queue_event(
        db,
        background_tasks,
        user_id=partner.user_id,
        event=WebhookEvent.ORDER_CREATED.value,
        data=PartnerOrder.model_validate(order).model_dump(mode="json"),
    )
    return order


@router.get("/tracking/{deal_id}", response_model=PartnerTracking)
@limiter.limit(PARTNER_RATE, key_func=partner_api_key)
def get_tracking(
    request: Request,
    deal_id: str,
    db: Session = Depends(get_db),
    partner: PartnerApiKey = Depends(deps.get_partner_key),
):
    deal = crud_deal.get(db, deal_id)
    if deal is None or deal.client_id != partner.user_id:
        raise NotFoundError("Deal", deal_id)

    location = crud_gps_location.get_latest(db, deal_id)
    return PartnerTracking(
        deal_id=deal.id,
        status=deal.status,
        current_location=(
            {"lat": location.latitude, "lng": location.longitude} if location else None
        ),
        location_updated_at=location.recorded_at if location else None,
        updated_at=deal.updated_at,
    )


@router.post("/webhooks/register", response_model=WebhookRegistered)
@limiter.limit(PARTNER_RATE, key_func=partner_api_key)
def register_webhook(
    request: Request,
    webhook_in: WebhookRegister,
    db: Session = Depends(get_db),
    partner: PartnerApiKey = Depends(deps.get_partner_key),
):
    webhook = crud_partner.upsert_webhook(db, partner=partner, obj_in=webhook_in)
    return WebhookRegistered(webhook_id=webhook.id)


# ── Key management ────────────────────────────────────────────────────

@router.post("/keys", response_model=PartnerKey, status_code=status.HTTP_201_CREATED)
def issue_partner_key(
    key_in: PartnerKeyCreate,
    db: Session = Depends(get_db),
    admin: TokenPayload = Depends(deps.get_current_admin),
):
    return crud_partner.issue_key(db, obj_in=key_in)


@router.post("/keys/{key_id}/deactivate", response_model=PartnerKey)
def deactivate_partner_key(
    key_id: str,
    db: Session = Depends(get_db),
    admin: TokenPayload = Depends(deps.get_current_admin),
):
    return crud_partner.deactivate_key(db, key_id)
