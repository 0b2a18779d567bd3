# app/schemas/referral.py
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime


class ReferralApply(BaseModel):
    code: str = Field(..., min_length=4, max_length=16)


class Referral(BaseModel):
    id: str
    referrer_id: str
    referred_id: str
    referral_code: str
    bonus_paid: bool
    bonus_paid_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class ReferralSummary(BaseModel):
    referral_code: Optional[str] = None
    bonus_points: int
    paid_count: int
    pending_count: int
    referrals: List[Referral]
