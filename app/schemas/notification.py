# app/schemas/notification.py
from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class Notification(BaseModel):
    id: str
    user_id: str
    title: str
    body: Optional[str] = None
    type: str
    url: Optional[str] = None
    is_read: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class PushSubscriptionCreate(BaseModel):
    endpoint: str
    p256dh: str
    auth: str
