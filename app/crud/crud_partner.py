# app/crud/crud_partner.py
"""API keys and webhook registrations for external logistics partners."""
import logging
import secrets
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError
from app.models.order import Order
from app.models.partner import PartnerApiKey, PartnerWebhook
from app.schemas.partner import PartnerKeyCreate, WebhookRegister

logger = logging.getLogger(__name__)


def get_active_key(db: Session, api_key: str) -> Optional[PartnerApiKey]:
    return (
        db.query(PartnerApiKey)
        .filter(PartnerApiKey.api_key == api_key, PartnerApiKey.is_active == True)
        .first()
    )


def record_usage(db: Session, key: PartnerApiKey) -> None:
    db.query(PartnerApiKey).filter(PartnerApiKey.id == key.id).update(
        {
            PartnerApiKey.request_count: PartnerApiKey.request_count + 1,
            PartnerApiKey.last_used_at: datetime.now(timezone.utc),
        },
        synchronize_session=False,
    )
    db.commit()


def issue_key(db: Session, *, obj_in: PartnerKeyCreate) -> PartnerApiKey:
    key = PartnerApiKey(
        user_id=obj_in.user_id, name=obj_in.name, api_key=secrets.token_hex(32)
    )
    db.add(key)
    db.commit()
    db.refresh(key)
    logger.info(f"Partner key {key.id} issued for {obj_in.user_id}")
    return key


def deactivate_key(db: Session, key_id: str) -> PartnerApiKey:
    key = db.query(PartnerApiKey).filter(PartnerApiKey.id == key_id).first()
    if key is None:
        raise NotFoundError("Partner key", key_id)
    key.is_active = False
    db.commit()
    db.refresh(key)
    logger.info(f"Partner key {key_id} deactivated")
    return key


def list_open_orders(
    db: Session,
    *,
    cargo_type: Optional[str] = None,
    pickup_city: Optional[str] = None,
    delivery_city: Optional[str] = None,
    limit: int = 20,
    offset: int = 0,
) -> Tuple[List[Order], int]:
    query = db.query(Order).filter(Order.status == "open")
    if cargo_type:
        query = query.filter(Order.cargo_type == cargo_type)
    if pickup_city:
        query = query.filter(Order.pickup_address.ilike(f"%{pickup_city}%"))
    if delivery_city:
        query = query.filter(Order.delivery_address.ilike(f"%{delivery_city}%"))

    total = query.count()
    orders = query.order_by(Order.created_at.desc()).offset(offset).limit(limit).all()
    return orders, total


def upsert_webhook(
    db: Session, *, partner: PartnerApiKey, obj_in: WebhookRegister
) -> PartnerWebhook:
    """One webhook per key; registering again replaces it."""
    webhook = (
        db.query(PartnerWebhook).filter(PartnerWebhook.partner_id == partner.id).first()
    )
    if webhook is None:
        webhook = PartnerWebhook(partner_id=partner.id)
        db.add(webhook)
    webhook.url = obj_in.url
    webhook.events = [e.value for e in obj_in.events]
    webhook.is_active = True
    db.commit()
    db.refresh(webhook)
    logger.info(f"Partner {partner.id} registered webhook {webhook.url}")
    return webhook


def get_webhooks_for_user(db: Session, *, user_id: str, event: str) -> List[PartnerWebhook]:
    """Active webhooks of the user's active keys that subscribe to `event`."""
    webhooks = (
        db.query(PartnerWebhook)
        .join(PartnerApiKey, PartnerWebhook.partner_id == PartnerApiKey.id)
        .filter(
            PartnerApiKey.user_id == user_id,
            PartnerApiKey.is_active == True,
            PartnerWebhook.is_active == True,
        )
        .all()
    )
    return [w for w in webhooks if event in (w.events or [])]
