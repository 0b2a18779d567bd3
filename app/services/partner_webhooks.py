# app/services/partner_webhooks.py
"""
Outgoing webhook calls to partners.

Deliveries run as FastAPI background tasks after the response is sent;
a failed delivery is logged and not retried.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

import httpx
from fastapi import BackgroundTasks
from sqlalchemy.orm import Session

from app.crud import crud_partner

logger = logging.getLogger(__name__)

DELIVERY_TIMEOUT = 10.0


def deliver(url: str, event: str, data: dict, transport: Optional[httpx.BaseTransport] = None) -> bool:
    payload = {
        "event": event,
        "data": data,
        "sent_at": datetime.now(timezone.utc).isoformat(),
    }
    try:
        with httpx.Client(transport=transport, timeout=DELIVERY_TIMEOUT) as client:
            response = client.post(url, json=payload, headers={"X-AsLogUz-Event": event})
        response.raise_for_status()
        logger.info(f"Webhook {event} delivered to {url}")
        return True
    except httpx.HTTPError as e:
        logger.warning(f"Webhook {event} to {url} failed: {e}")
        return False


def queue_event(
    db: Session,
    background_tasks: BackgroundTasks,
    *,
    user_id: str,
    event: str,
    data: dict,
) -> int:
    """Schedule `event` for every webhook of the user's partner keys."""
    webhooks = crud_partner.get_webhooks_for_user(db, user_id=user_id, event=event)
    for webhook in webhooks:
        background_tasks.add_task(deliver, webhook.url, event, data)
    return len(webhooks)
