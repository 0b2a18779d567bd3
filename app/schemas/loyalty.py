# app/schemas/loyalty.py
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class LoyaltyAccount(BaseModel):
    user_id: str
    balance: int
    lifetime_earned: int

    model_config = {"from_attributes": True}


class LoyaltyTransaction(BaseModel):
    id: str
    user_id: str
    amount: int
    type: str
    reason: str
    reference_id: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class LoyaltyReward(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    points_cost: int
    discount_percent: Optional[int] = None
    discount_amount: Optional[int] = None
    is_active: bool

    model_config = {"from_attributes": True}


class LoyaltyOverview(BaseModel):
    account: LoyaltyAccount
    transactions: List[LoyaltyTransaction]


class SpendRequest(BaseModel):
    amount: int = Field(..., gt=0)
    reason: str = Field(..., min_length=1, max_length=200)
    reference_id: Optional[str] = None
