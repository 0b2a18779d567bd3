# app/schemas/payment.py
from pydantic import BaseModel, Field, field_validator
from typing import Optional, Any, Dict, List
from datetime import datetime
from enum import Enum


class PaymentProvider(str, Enum):
    CLICK = "click"
    PAYME = "payme"


class BillingPeriod(str, Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"


class PaymentCreate(BaseModel):
    plan_id: str
    billing_period: BillingPeriod
    provider: PaymentProvider
    return_url: Optional[str] = None

    @field_validator("return_url")
    @classmethod
    def validate_return_url(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.startswith(("http://", "https://")):
            raise ValueError("return_url must be an http(s) URL")
        return v


class PaymentCreated(BaseModel):
    payment_url: str
    subscription_id: str
    transaction_id: str
    amount: int
    provider: PaymentProvider


# --- Click webhook ---

class ClickWebhookResult(BaseModel):
    click_trans_id: Optional[str] = None
    merchant_trans_id: Optional[str] = None
    merchant_prepare_id: Optional[str] = None
    merchant_confirm_id: Optional[str] = None
    error: int
    error_note: str


# --- Payme JSON-RPC ---

class PaymeRequest(BaseModel):
    id: Optional[Any] = None
    method: str
    params: Dict[str, Any] = Field(default_factory=dict)


class SubscriptionPlan(BaseModel):
    id: str
    name: str
    display_name: str
    description: Optional[str] = None
    price_monthly: int
    price_yearly: Optional[int] = None
    features: Optional[List[str]] = None

    model_config = {"from_attributes": True}


class UserSubscription(BaseModel):
    id: str
    plan_id: str
    status: str
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    plan: Optional[SubscriptionPlan] = None

    model_config = {"from_attributes": True}
