# app/schemas/profile.py
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from enum import Enum


class CarrierType(str, Enum):
    DRIVER = "driver"
    COMPANY = "company"


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = Field(None, max_length=200)
    phone: Optional[str] = Field(None, max_length=32)
    email: Optional[str] = Field(None, max_length=255)
    carrier_type: Optional[CarrierType] = None
    company_name: Optional[str] = Field(None, max_length=200)
    vehicle_type: Optional[str] = Field(None, max_length=100)


class Profile(BaseModel):
    id: str
    user_id: str
    full_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    role: str
    carrier_type: Optional[str] = None
    company_name: Optional[str] = None
    vehicle_type: Optional[str] = None
    is_verified: bool
    referral_code: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}
