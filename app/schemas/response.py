# app/schemas/response.py
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class ResponseCreate(BaseModel):
    price: int = Field(..., gt=0)
    delivery_time: Optional[str] = Field(None, max_length=100)
    comment: Optional[str] = Field(None, max_length=2000)


class Response(BaseModel):
    id: str
    order_id: str
    carrier_id: str
    price: int
    delivery_time: Optional[str] = None
    comment: Optional[str] = None
    is_accepted: bool
    created_at: datetime

    model_config = {"from_attributes": True}
