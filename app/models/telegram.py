# app/models/telegram.py
import uuid
from sqlalchemy import Column, String, Integer, Boolean, DateTime
from sqlalchemy.sql import func
from app.db.base_class import Base


class OtpCode(Base):
    """One-time codes: Telegram link codes and phone login codes."""

    __tablename__ = "otp_codes"

    id = Column(
        String, primary_key=True, default=lambda: f"otp_{uuid.uuid4().hex[:12]}"
    )
    user_id = Column(String, nullable=True, index=True)
    phone = Column(String(32), nullable=True, index=True)
    code = Column(String, nullable=False, index=True)
    type = Column(String, nullable=False)  # telegram_link | telegram_login
    attempts = Column(Integer, nullable=False, default=0, server_default="0")
    max_attempts = Column(Integer, nullable=False, default=5, server_default="5")
    verified = Column(Boolean, nullable=False, default=False, server_default="false")
    expires_at = Column(DateTime(timezone=True), nullable=False)

    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class TelegramUser(Base):
    __tablename__ = "telegram_users"

    id = Column(
        String, primary_key=True, default=lambda: f"tgu_{uuid.uuid4().hex[:12]}"
    )
    user_id = Column(String, nullable=False, index=True)
    telegram_id = Column(String, nullable=False, unique=True)
    telegram_username = Column(String, nullable=True)
    telegram_first_name = Column(String, nullable=True)
    telegram_last_name = Column(String, nullable=True)
    phone = Column(String(32), nullable=True)
    is_verified = Column(Boolean, nullable=False, default=False, server_default="false")

    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
