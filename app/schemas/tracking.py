# app/schemas/tracking.py
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class LocationReport(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    accuracy: Optional[float] = Field(None, ge=0)
    speed: Optional[float] = Field(None, ge=0)
    heading: Optional[float] = Field(None, ge=0, lt=360)


class Location(BaseModel):
    id: str
    deal_id: str
    carrier_id: str
    latitude: float
    longitude: float
    accuracy: Optional[float] = None
    speed: Optional[float] = None
    heading: Optional[float] = None
    recorded_at: datetime

    model_config = {"from_attributes": True}
