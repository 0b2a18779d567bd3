# app/api/v1/endpoints/telegram.py
"""Telegram bot webhook, account linking and phone login via the bot."""
import hmac
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from app.api import deps
from app.db.session import get_db
from app.core.config import settings
from app.core.exceptions import NotFoundError, ServiceUnavailableError
from app.core.limiter import limiter, OTP_RATE
from app.crud import crud_profile, crud_telegram
from app.schemas.telegram import (
    LinkCode,
    LinkStatus,
    LoginCodeRequest,
    LoginCodeSent,
    LoginVerify,
    TelegramUpdate,
)
from app.schemas.token import AccessToken, TokenPayload
from app.services.telegram_bot import TelegramBot, get_telegram_bot

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/telegram", tags=["Telegram"])


@router.post("/webhook")
def telegram_webhook(
    update: TelegramUpdate,
    request: Request,
    db: Session = Depends(get_db),
    bot: TelegramBot = Depends(get_telegram_bot),
):
    if settings.TELEGRAM_WEBHOOK_SECRET:
        token = request.headers.get("x-telegram-bot-api-secret-token", "")
        if not hmac.compare_digest(token, settings.TELEGRAM_WEBHOOK_SECRET):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid secret")

    bot.handle_update(db, update)
    # Telegram only needs a 200
    return {"ok": True}


@router.post("/link-code", response_model=LinkCode)
def create_link_code(
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    otp = crud_telegram.create_link_code(db, current_user.sub)
    return LinkCode(
        code=otp.code,
        expires_at=otp.expires_at,
        bot_url=f"https://t.me/{settings.TELEGRAM_BOT_USERNAME}?start={otp.code}",
    )


@router.get("/status", response_model=LinkStatus)
def link_status(
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    tg_user = crud_telegram.get_by_user_id(db, current_user.sub)
    if tg_user is None:
        return LinkStatus(linked=False)
    return LinkStatus(linked=True, telegram_username=tg_user.telegram_username)


@router.delete("/link", status_code=status.HTTP_204_NO_CONTENT)
def unlink(
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    tg_user = crud_telegram.get_by_user_id(db, current_user.sub)
    if tg_user is None:
        raise NotFoundError("Telegram link", current_user.sub)
    crud_telegram.unlink(db, tg_user.telegram_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/login/request", response_model=LoginCodeSent)
@limiter.limit(OTP_RATE)
def request_login_code(
    request: Request,
    login_in: LoginCodeRequest,
    db: Session = Depends(get_db),
    bot: TelegramBot = Depends(get_telegram_bot),
):
    otp = crud_telegram.create_login_code(db, login_in.phone)
    if not bot.send_login_code(db, otp):
        raise ServiceUnavailableError("Could not deliver the code via Telegram", service="telegram")
    return LoginCodeSent(sent=True, expires_at=otp.expires_at)


@router.post("/login/verify", response_model=AccessToken)
@limiter.limit(OTP_RATE)
def verify_login_code(
    request: Request,
    verify_in: LoginVerify,
    db: Session = Depends(get_db),
):
    user_id = crud_telegram.verify_login_code(db, phone=verify_in.phone, code=verify_in.code)
    profile = crud_profile.get_by_user_id(db, user_id)
    role = profile.role if profile else "client"
    return AccessToken(access_token=deps.create_access_token(user_id, role))
