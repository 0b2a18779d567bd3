# app/schemas/partner.py
import re
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime
from enum import Enum

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def _clean(v):
    if isinstance(v, str):
        return _CONTROL_CHARS.sub("", v).strip()
    return v


class WebhookEvent(str, Enum):
    ORDER_CREATED = "order.created"
    ORDER_ACCEPTED = "order.accepted"
    DEAL_STATUS_CHANGED = "deal.status_changed"
    DEAL_DELIVERED = "deal.delivered"


class PartnerOrderCreate(BaseModel):
    cargo_type: str = Field(..., min_length=1, max_length=100)
    weight: float = Field(..., gt=0, le=1_000_000)
    pickup_address: str = Field(..., min_length=5, max_length=500)
    delivery_address: str = Field(..., min_length=5, max_length=500)
    pickup_date: datetime
    client_price: Optional[int] = Field(None, gt=0, le=100_000_000)
    description: Optional[str] = Field(None, max_length=2000)

    @field_validator("cargo_type", "pickup_address", "delivery_address", "description", mode="before")
    @classmethod
    def strip_control_chars(cls, v):
        return _clean(v)


class PartnerOrder(BaseModel):
    id: str
    cargo_type: str
    weight: Optional[float] = None
    pickup_address: str
    delivery_address: str
    pickup_date: datetime
    client_price: Optional[int] = None
    description: Optional[str] = None
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class PartnerOrderPage(BaseModel):
    orders: List[PartnerOrder]
    total: int
    limit: int
    offset: int


class PartnerTracking(BaseModel):
    deal_id: str
    status: str
    current_location: Optional[dict] = None
    location_updated_at: Optional[datetime] = None
    eta_minutes: Optional[int] = None
    updated_at: Optional[datetime] = None


class WebhookRegister(BaseModel):
    url: str = Field(..., min_length=1, max_length=2000)
    events: List[WebhookEvent] = Field(..., min_length=1, max_length=10)

    @field_validator("url", mode="before")
    @classmethod
    def validate_url(cls, v):
        v = _clean(v)
        if isinstance(v, str) and not v.startswith(("http://", "https://")):
            raise ValueError("url must use http or https protocol")
        return v


class WebhookRegistered(BaseModel):
    success: bool = True
    webhook_id: str


# --- Key management (admin) ---

class PartnerKeyCreate(BaseModel):
    user_id: str
    name: Optional[str] = Field(None, max_length=200)


class PartnerKey(BaseModel):
    id: str
    user_id: str
    api_key: str
    name: Optional[str] = None
    is_active: bool
    request_count: int
    last_used_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}
