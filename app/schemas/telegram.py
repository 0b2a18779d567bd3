# app/schemas/telegram.py
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class LinkCode(BaseModel):
    code: str
    expires_at: datetime
    bot_url: Optional[str] = None


class LinkStatus(BaseModel):
    linked: bool
    telegram_username: Optional[str] = None


class LoginCodeRequest(BaseModel):
    phone: str = Field(..., min_length=7, max_length=32)


class LoginCodeSent(BaseModel):
    sent: bool
    expires_at: datetime


class LoginVerify(BaseModel):
    phone: str = Field(..., min_length=7, max_length=32)
    code: str = Field(..., pattern=r"^\d{6}$")


# --- Bot API update payloads (subset) ---

class TelegramFrom(BaseModel):
    id: int
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class TelegramChat(BaseModel):
    id: int


class TelegramContact(BaseModel):
    phone_number: str
    user_id: Optional[int] = None


class TelegramMessage(BaseModel):
    message_id: int
    chat: TelegramChat
    from_: Optional[TelegramFrom] = Field(None, alias="from")
    text: Optional[str] = None
    contact: Optional[TelegramContact] = None

    model_config = {"populate_by_name": True}


class TelegramUpdate(BaseModel):
    update_id: int
    message: Optional[TelegramMessage] = None


class TelegramUserOut(BaseModel):
    telegram_id: str
    telegram_username: Optional[str] = None
    is_verified: bool

    model_config = {"from_attributes": True}
