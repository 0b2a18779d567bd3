# app/utils/notifications.py
"""
Channel-agnostic notification dispatcher for the marketplace.

Every notification writes an in-app row, publishes it on the user's Redis
channel, queues a push request when the user has push subscriptions, and
optionally sends an email through Resend. Failures in one channel do not
block the others and never fail the caller.
"""
import json
import logging
from typing import Optional

import resend
from sqlalchemy.orm import Session

from app.core.config import settings
from app.crud import crud_notification, crud_profile
from app.db.redis import redis_client

logger = logging.getLogger(__name__)

# Configure Resend
if settings.RESEND_API_KEY:
    resend.api_key = settings.RESEND_API_KEY

FRONTEND_URL = settings.APP_URL
PUSH_CHANNEL = "push.requests"


def _send_email(to: str, subject: str, html: str, text: str) -> bool:
    """Send email via Resend. Returns True on success."""
    if not settings.RESEND_API_KEY:
        logger.debug(f"Skipping email to {to}: RESEND_API_KEY not configured")
        return False
    try:
        params = {
            "from": f"AsLogUz <noreply@{settings.RESEND_FROM_DOMAIN}>",
            "to": [to],
            "subject": subject,
            "html": html,
            "text": text,
        }
        resend.Emails.send(params)
        logger.info(f"Sent email to {to}: {subject}")
        return True
    except Exception as e:
        logger.error(f"Failed to send email to {to}: {e}", exc_info=True)
        return False


def _publish(channel: str, payload: dict) -> bool:
    """Publish to Redis pub/sub."""
    try:
        redis_client.publish(channel, json.dumps(payload, default=str))
        return True
    except Exception as e:
        logger.error(f"Failed to publish on {channel}: {e}", exc_info=True)
        return False


def notify_user(
    db: Session,
    *,
    user_id: str,
    title: str,
    body: Optional[str],
    type: str,
    url: Optional[str] = None,
    email: bool = False,
) -> None:
    """Fan a notification out to every channel the user has."""
    link = f"{FRONTEND_URL}{url}" if url else FRONTEND_URL

    try:
        notification = crud_notification.create(
            db, user_id=user_id, title=title, body=body, type=type, url=url
        )
        _publish(
            f"notifications:{user_id}",
            {
                "id": notification.id,
                "title": title,
                "body": body,
                "type": type,
                "url": url,
            },
        )
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to store notification for {user_id}: {e}", exc_info=True)

    try:
        subscriptions = crud_notification.get_push_subscriptions(db, user_id)
        if subscriptions:
            _publish(
                PUSH_CHANNEL,
                {
                    "user_id": user_id,
                    "title": title,
                    "body": body,
                    "url": link,
                    "endpoints": [s.endpoint for s in subscriptions],
                },
            )
    except Exception as e:
        logger.error(f"Failed to queue push for {user_id}: {e}", exc_info=True)

    if email:
        profile = crud_profile.get_by_user_id(db, user_id)
        if profile and profile.email:
            html = (
                f"<h2>{title}</h2>"
                f"<p>{body or ''}</p>"
                f'<p><a href="{link}">Open AsLogUz</a></p>'
            )
            _send_email(profile.email, title, html, f"{title}\n\n{body or ''}\n\n{link}")


# ── Domain helpers ────────────────────────────────────────────────────

def notify_new_order(db: Session, *, order) -> int:
    """Tell every carrier about a new open order. Returns how many were notified."""
    price = f" • {order.client_price} so'm" if order.client_price else ""
    body = f"{order.cargo_type}{price}\n{order.pickup_address} → {order.delivery_address}"
    notified = 0
    for carrier_id in crud_profile.list_carrier_ids(db):
        if carrier_id == order.client_id:
            continue
        notify_user(
            db,
            user_id=carrier_id,
            title="New cargo order!",
            body=body,
            type="new_order",
            url="/dashboard",
            email=True,
        )
        notified += 1
    logger.info(f"Order {order.id}: notified {notified} carriers")
    return notified


def notify_new_response(db: Session, *, order, response) -> None:
    notify_user(
        db,
        user_id=order.client_id,
        title="New response to your order",
        body=f"A carrier offered {response.price} so'm for {order.cargo_type}",
        type="response",
        url=f"/orders/{order.id}",
        email=True,
    )


def notify_new_proposal(db: Session, *, negotiation, recipient_ids) -> None:
    for recipient_id in recipient_ids:
        notify_user(
            db,
            user_id=recipient_id,
            title="New price proposal",
            body=f"Proposed price: {negotiation.proposed_price} so'm",
            type="negotiation",
            url=f"/orders/{negotiation.order_id}",
        )


def notify_proposal_answered(db: Session, *, negotiation) -> None:
    verb = "accepted" if negotiation.status == "accepted" else "rejected"
    notify_user(
        db,
        user_id=negotiation.proposed_by,
        title=f"Your proposal was {verb}",
        body=f"{negotiation.proposed_price} so'm",
        type="negotiation",
        url=f"/orders/{negotiation.order_id}",
    )


def notify_deal_created(db: Session, *, deal) -> None:
    notify_user(
        db,
        user_id=deal.carrier_id,
        title="Your response was accepted",
        body=f"Deal at {deal.agreed_price} so'm is waiting for your confirmation",
        type="deal_status",
        url=f"/deals/{deal.id}",
        email=True,
    )


def notify_deal_status(db: Session, *, deal, actor_id: str) -> None:
    notify_user(
        db,
        user_id=deal.counterparty_of(actor_id),
        title="Deal status updated",
        body=f"Deal is now {deal.status.replace('_', ' ')}",
        type="deal_status",
        url=f"/deals/{deal.id}",
        email=deal.status in ("delivered", "cancelled"),
    )


def notify_new_message(db: Session, *, deal, message) -> None:
    preview = message.content if len(message.content) <= 100 else message.content[:97] + "..."
    notify_user(
        db,
        user_id=deal.counterparty_of(message.sender_id),
        title="New message",
        body=preview,
        type="message",
        url=f"/deals/{deal.id}",
    )


def notify_points_earned(db: Session, *, user_id: str, amount: int, reason: str) -> None:
    notify_user(
        db,
        user_id=user_id,
        title="Loyalty points earned!",
        body=f"+{amount} points: {reason}",
        type="loyalty",
        url="/loyalty",
        email=True,
    )


def notify_kyc_result(db: Session, *, document) -> None:
    titles = {
        "verified": "Identity verified",
        "rejected": "Identity verification rejected",
        "manual_review": "Identity verification under review",
    }
    title = titles.get(document.status)
    if not title:
        return
    notify_user(
        db,
        user_id=document.user_id,
        title=title,
        body=document.rejection_reason,
        type="kyc",
        url="/profile/kyc",
        email=True,
    )
