# app/api/v1/endpoints/notifications.py
from typing import List

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.api import deps
from app.db.session import get_db
from app.core.exceptions import NotFoundError
from app.crud import crud_notification
from app.schemas.notification import Notification, PushSubscriptionCreate
from app.schemas.token import TokenPayload

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=List[Notification])
def list_notifications(
    unread_only: bool = False,
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    return crud_notification.get_multi_by_user(
        db, current_user.sub, unread_only=unread_only, limit=limit
    )


@router.post("/{notification_id}/read", response_model=Notification)
def mark_notification_read(
    notification_id: str,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    return crud_notification.mark_read(
        db, notification_id=notification_id, user_id=current_user.sub
    )


@router.post("/read-all")
def mark_all_notifications_read(
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    return {"updated": crud_notification.mark_all_read(db, user_id=current_user.sub)}


@router.post("/push-subscriptions", status_code=status.HTTP_201_CREATED)
def register_push_subscription(
    subscription_in: PushSubscriptionCreate,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    subscription = crud_notification.upsert_push_subscription(
        db,
        user_id=current_user.sub,
        endpoint=subscription_in.endpoint,
        p256dh=subscription_in.p256dh,
        auth=subscription_in.auth,
    )
    return {"id": subscription.id, "endpoint": subscription.endpoint}


@router.delete("/push-subscriptions", status_code=status.HTTP_204_NO_CONTENT)
def delete_push_subscription(
    endpoint: str,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    if not crud_notification.delete_push_subscription(
        db, user_id=current_user.sub, endpoint=endpoint
    ):
        raise NotFoundError("Push subscription", endpoint)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
