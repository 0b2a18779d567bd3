# app/api/deps.py
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from app.core.config import settings
from app.crud import crud_partner
from app.db.session import get_db
from app.models.partner import PartnerApiKey
from app.schemas.token import TokenPayload

# The `tokenUrl` doesn't have to be a real endpoint in this service,
# it's just for the OpenAPI documentation.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")

PARTNER_KEY_MIN_LENGTH = 32
PARTNER_KEY_MAX_LENGTH = 128


def get_current_user(token: str = Depends(oauth2_scheme)) -> TokenPayload:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
        # Validate the payload against our schema
        token_data = TokenPayload(**payload)
    except (JWTError, ValueError):
        # Catches any error from jose or Pydantic validation
        raise credentials_exception

    return token_data


def get_current_admin(current_user: TokenPayload = Depends(get_current_user)) -> TokenPayload:
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return current_user


def get_current_client(current_user: TokenPayload = Depends(get_current_user)) -> TokenPayload:
    if current_user.role != "client":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Client access required",
        )
    return current_user


def get_current_carrier(current_user: TokenPayload = Depends(get_current_user)) -> TokenPayload:
    if current_user.role != "carrier":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Carrier access required",
        )
    return current_user


def create_access_token(user_id: str, role: str) -> str:
    """Signed access token for users who log in through the Telegram OTP flow."""
    expires_at = datetime.now(timezone.utc) + timedelta(days=settings.ACCESS_TOKEN_TTL_DAYS)
    return jwt.encode(
        {"sub": user_id, "role": role, "exp": expires_at},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )


def get_partner_key(
    x_api_key: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> PartnerApiKey:
    """Resolve the `X-API-Key` header to an active partner key and count the call."""
    if not x_api_key or not (PARTNER_KEY_MIN_LENGTH <= len(x_api_key) <= PARTNER_KEY_MAX_LENGTH):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid API key",
        )
    key = crud_partner.get_active_key(db, x_api_key)
    if key is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
        )
    crud_partner.record_usage(db, key)
    return key
