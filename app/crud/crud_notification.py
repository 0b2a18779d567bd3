# app/crud/crud_notification.py
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError
from app.models.notification import Notification, PushSubscription


def create(
    db: Session,
    *,
    user_id: str,
    title: str,
    body: Optional[str],
    type: str,
    url: Optional[str] = None,
) -> Notification:
    notification = Notification(
        user_id=user_id, title=title, body=body, type=type, url=url, is_read=False
    )
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification


def get_multi_by_user(
    db: Session, user_id: str, unread_only: bool = False, limit: int = 50
) -> List[Notification]:
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.is_read == False)
    return query.order_by(Notification.created_at.desc()).limit(limit).all()


def mark_read(db: Session, *, notification_id: str, user_id: str) -> Notification:
    notification = (
        db.query(Notification)
        .filter(Notification.id == notification_id, Notification.user_id == user_id)
        .first()
    )
    if not notification:
        raise NotFoundError("Notification", notification_id)
    notification.is_read = True
    db.commit()
    db.refresh(notification)
    return notification


def mark_all_read(db: Session, *, user_id: str) -> int:
    count = (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read == False)
        .update({Notification.is_read: True}, synchronize_session=False)
    )
    db.commit()
    return count


# --- Push subscriptions ---

def upsert_push_subscription(
    db: Session, *, user_id: str, endpoint: str, p256dh: str, auth: str
) -> PushSubscription:
    sub = (
        db.query(PushSubscription)
        .filter(PushSubscription.user_id == user_id, PushSubscription.endpoint == endpoint)
        .first()
    )
    if sub:
        sub.p256dh = p256dh
        sub.auth = auth
    else:
        sub = PushSubscription(user_id=user_id, endpoint=endpoint, p256dh=p256dh, auth=auth)
        db.add(sub)
    db.commit()
    db.refresh(sub)
    return sub


def get_push_subscriptions(db: Session, user_id: str) -> List[PushSubscription]:
    return db.query(PushSubscription).filter(PushSubscription.user_id == user_id).all()


def delete_push_subscription(db: Session, *, user_id: str, endpoint: str) -> bool:
    deleted = (
        db.query(PushSubscription)
        .filter(PushSubscription.user_id == user_id, PushSubscription.endpoint == endpoint)
        .delete(synchronize_session=False)
    )
    db.commit()
    return bool(deleted)
