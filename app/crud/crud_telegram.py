# app/crud/crud_telegram.py
"""
Telegram account linking and phone login codes.

Expiry is compared in SQL so the database clock and stored timestamps
agree regardless of driver timezone handling.
"""
import hmac
import logging
import secrets
import string
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import DomainValidationError, NotFoundError, PermissionDeniedError
from app.crud import crud_profile
from app.models.telegram import OtpCode, TelegramUser

logger = logging.getLogger(__name__)

LINK_CODE_ALPHABET = string.ascii_uppercase + string.digits
LINK_CODE_LENGTH = 6
LOGIN_CODE_LENGTH = 6


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _generate_link_code() -> str:
    return "".join(secrets.choice(LINK_CODE_ALPHABET) for _ in range(LINK_CODE_LENGTH))


def _generate_login_code() -> str:
    return "".join(secrets.choice(string.digits) for _ in range(LOGIN_CODE_LENGTH))


# --- Linked accounts ---

def get_by_telegram_id(db: Session, telegram_id) -> Optional[TelegramUser]:
    return (
        db.query(TelegramUser)
        .filter(TelegramUser.telegram_id == str(telegram_id))
        .first()
    )


def get_by_user_id(db: Session, user_id: str) -> Optional[TelegramUser]:
    return db.query(TelegramUser).filter(TelegramUser.user_id == user_id).first()


def link_account(
    db: Session,
    *,
    user_id: str,
    telegram_id,
    username: Optional[str] = None,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    phone: Optional[str] = None,
    commit: bool = True,
) -> TelegramUser:
    """Create or re-point the link for a Telegram account."""
    tg_user = get_by_telegram_id(db, telegram_id)
    if tg_user is None:
        tg_user = TelegramUser(telegram_id=str(telegram_id), user_id=user_id)
        db.add(tg_user)
    tg_user.user_id = user_id
    tg_user.telegram_username = username
    tg_user.telegram_first_name = first_name
    tg_user.telegram_last_name = last_name
    if phone:
        tg_user.phone = crud_profile.normalize_phone(phone)
    tg_user.is_verified = True

    if commit:
        db.commit()
        db.refresh(tg_user)
    else:
        db.flush()
    logger.info(f"Telegram account {telegram_id} linked to user {user_id}")
    return tg_user


def unlink(db: Session, telegram_id) -> bool:
    deleted = (
        db.query(TelegramUser)
        .filter(TelegramUser.telegram_id == str(telegram_id))
        .delete(synchronize_session=False)
    )
    db.commit()
    return bool(deleted)


# --- Link codes ---

def create_link_code(db: Session, user_id: str) -> OtpCode:
    """Issue a fresh link code; earlier unused codes of the user stop working."""
    db.query(OtpCode).filter(
        OtpCode.user_id == user_id,
        OtpCode.type == "telegram_link",
        OtpCode.verified == False,
    ).delete(synchronize_session=False)

    otp = OtpCode(
        user_id=user_id,
        code=_generate_link_code(),
        type="telegram_link",
        attempts=0,
        max_attempts=1,
        expires_at=_now() + timedelta(minutes=settings.TELEGRAM_LINK_CODE_TTL_MINUTES),
    )
    db.add(otp)
    db.commit()
    db.refresh(otp)
    return otp


def consume_link_code(
    db: Session,
    *,
    code: str,
    telegram_id,
    username: Optional[str] = None,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
) -> Optional[TelegramUser]:
    """Single use: the code is marked verified in the same commit as the link."""
    otp = (
        db.query(OtpCode)
        .filter(
            OtpCode.code == code.upper(),
            OtpCode.type == "telegram_link",
            OtpCode.verified == False,
            OtpCode.expires_at > _now(),
        )
        .with_for_update()
        .first()
    )
    if otp is None:
        return None

    otp.verified = True
    tg_user = link_account(
        db,
        user_id=otp.user_id,
        telegram_id=telegram_id,
        username=username,
        first_name=first_name,
        last_name=last_name,
        commit=False,
    )
    db.commit()
    db.refresh(tg_user)
    return tg_user


# --- Phone login codes ---

def create_login_code(db: Session, phone: str) -> OtpCode:
    """
    Issue a numeric login code for a phone that belongs to a profile with a
    linked Telegram account (the code is delivered through the bot).
    """
    profile = crud_profile.get_by_phone(db, phone)
    if profile is None:
        raise NotFoundError("Profile", crud_profile.normalize_phone(phone))
    if get_by_user_id(db, profile.user_id) is None:
        raise DomainValidationError("Link your Telegram account before logging in with it")

    otp = OtpCode(
        user_id=profile.user_id,
        phone=profile.phone,
        code=_generate_login_code(),
        type="telegram_login",
        attempts=0,
        max_attempts=settings.TELEGRAM_LOGIN_MAX_ATTEMPTS,
        expires_at=_now() + timedelta(minutes=settings.TELEGRAM_LOGIN_CODE_TTL_MINUTES),
    )
    db.add(otp)
    db.commit()
    db.refresh(otp)
    return otp


def verify_login_code(db: Session, *, phone: str, code: str) -> str:
    """Returns the user id on success. Every attempt counts toward the limit."""
    otp = (
        db.query(OtpCode)
        .filter(
            OtpCode.phone == crud_profile.normalize_phone(phone),
            OtpCode.type == "telegram_login",
            OtpCode.verified == False,
            OtpCode.expires_at > _now(),
        )
        .order_by(OtpCode.created_at.desc())
        .with_for_update()
        .first()
    )
    if otp is None:
        raise DomainValidationError("Code expired or not requested")
    if otp.attempts >= otp.max_attempts:
        raise PermissionDeniedError("Too many attempts, request a new code")

    otp.attempts += 1
    if not hmac.compare_digest(otp.code, code):
        db.commit()
        raise DomainValidationError(
            "Invalid code",
            details={"attempts_left": max(otp.max_attempts - otp.attempts, 0)},
        )

    otp.verified = True
    db.commit()
    logger.info(f"Telegram login verified for user {otp.user_id}")
    return otp.user_id


def purge_expired_codes(db: Session) -> int:
    deleted = (
        db.query(OtpCode)
        .filter(OtpCode.expires_at < _now())
        .delete(synchronize_session=False)
    )
    db.commit()
    return deleted
