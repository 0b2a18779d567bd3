# app/schemas/negotiation.py
from pydantic import BaseModel, Field
from typing import Optional, List, Literal
from datetime import datetime
from enum import Enum


class NegotiationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class NegotiationCreate(BaseModel):
    response_id: Optional[str] = None
    proposed_price: int = Field(..., gt=0)
    message: Optional[str] = Field(None, max_length=1000)


class Negotiation(BaseModel):
    id: str
    order_id: str
    response_id: Optional[str] = None
    proposed_by: str
    proposed_price: int
    message: Optional[str] = None
    status: NegotiationStatus
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class NegotiationList(BaseModel):
    """Negotiations of an order, newest first, plus the caller's turn flag."""

    negotiations: List[Negotiation]
    can_propose: bool
    accepted_price: Optional[int] = None


# --- Change feed ---

class NegotiationEvent(BaseModel):
    """Typed event published on the order's change feed."""

    type: Literal["negotiation.created", "negotiation.updated"]
    order_id: str
    negotiation: Negotiation
