# app/schemas/deal.py
from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from enum import Enum


class DealStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class DealStatusUpdate(BaseModel):
    status: DealStatus
    proof_photo_url: Optional[str] = None


class Deal(BaseModel):
    id: str
    order_id: str
    client_id: str
    carrier_id: str
    agreed_price: int
    status: DealStatus
    proof_photo_url: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
