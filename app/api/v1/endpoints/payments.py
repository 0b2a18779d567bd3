# app/api/v1/endpoints/payments.py
"""Subscription payments through Click and Payme, and their webhooks."""
import json
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.api import deps
from app.db.session import get_db
from app.crud import crud_subscription
from app.schemas.payment import (
    ClickWebhookResult,
    PaymentCreate,
    PaymentCreated,
    PaymeRequest,
    SubscriptionPlan,
    UserSubscription,
)
from app.schemas.token import TokenPayload
from app.services.payment import PaymentService, get_payment_provider
from app.services.payment.payment_service import (
    CLICK_BAD_REQUEST,
    PAYME_INVALID_REQUEST,
    PAYME_PARSE_ERROR,
    payme_error,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["Payments"])


def _client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


@router.get("/plans", response_model=List[SubscriptionPlan])
def list_plans(db: Session = Depends(get_db)):
    return crud_subscription.get_active_plans(db)


@router.get("/subscription", response_model=Optional[UserSubscription])
def get_my_subscription(
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    return crud_subscription.get_current_for_user(db, current_user.sub)


@router.post("/create", response_model=PaymentCreated, status_code=status.HTTP_201_CREATED)
def create_payment(
    request: Request,
    payment_in: PaymentCreate,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    return PaymentService(db).create_payment(
        user_id=current_user.sub, payment_in=payment_in, ip_address=_client_ip(request)
    )


@router.post("/click/webhook")
async def click_webhook(request: Request, db: Session = Depends(get_db)):
    """Click prepare (action=0) and complete (action=1) callbacks."""
    try:
        payload = await request.json()
        if not isinstance(payload, dict):
            raise ValueError("payload must be an object")
    except ValueError:
        return JSONResponse(
            status_code=400,
            content={"error": CLICK_BAD_REQUEST, "error_note": "Invalid request"},
        )

    status_code, body = PaymentService(db).handle_click_webhook(
        payload, ip_address=_client_ip(request)
    )
    return JSONResponse(
        status_code=status_code,
        content=ClickWebhookResult(**body).model_dump(exclude_none=True),
    )


@router.post("/payme/webhook")
async def payme_webhook(request: Request, db: Session = Depends(get_db)):
    """Payme merchant API (JSON-RPC 2.0). Errors travel in the body."""
    raw = await request.body()
    try:
        data = json.loads(raw)
    except ValueError:
        return JSONResponse(content=payme_error(None, PAYME_PARSE_ERROR, "Parse error"))

    request_id = data.get("id") if isinstance(data, dict) else None
    service = PaymentService(db)

    provider = get_payment_provider("payme")
    if not provider.verify_authorization(request.headers.get("authorization")):
        return JSONResponse(
            status_code=401,
            content=service.reject_payme_auth(request_id, ip_address=_client_ip(request)),
        )

    try:
        rpc = PaymeRequest.model_validate(data)
    except ValidationError:
        return JSONResponse(content=payme_error(request_id, PAYME_INVALID_REQUEST, "Invalid request"))

    return JSONResponse(content=service.handle_payme_request(rpc))
