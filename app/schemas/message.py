# app/schemas/message.py
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional


class MessageCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=4000)


class Message(BaseModel):
    id: str
    deal_id: Optional[str] = None
    order_id: Optional[str] = None
    sender_id: str
    content: str
    is_system: bool
    created_at: datetime

    model_config = {"from_attributes": True}
