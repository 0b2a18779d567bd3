# app/services/telegram_bot.py
"""
Telegram bot: account linking via one-time codes and delivery of phone
login codes. Updates arrive through the webhook endpoint.
"""

import logging
import re
from typing import Optional

import httpx
from sqlalchemy.orm import Session

from app.core.config import settings
from app.crud import crud_profile, crud_security_event, crud_telegram
from app.models.telegram import OtpCode
from app.schemas.telegram import TelegramMessage, TelegramUpdate

logger = logging.getLogger(__name__)

API_URL = "https://api.telegram.org/bot{token}/{method}"

LINK_CODE_RE = re.compile(r"^[A-Za-z0-9]{6}$")

HELP_TEXT = (
    "AsLogUz bot\n\n"
    "/start CODE - link your AsLogUz account (get the code in your profile)\n"
    "/status - show link status\n"
    "/unlink - unlink this Telegram account\n"
    "/help - this message\n\n"
    "Once linked, phone login codes are sent here."
)


class TelegramBot:
    def __init__(self, token: Optional[str] = None, transport: Optional[httpx.BaseTransport] = None):
        self.token = token if token is not None else settings.TELEGRAM_BOT_TOKEN
        self.timeout = 10.0
        self._transport = transport

    def send_message(self, chat_id, text: str) -> bool:
        """Best effort: failures are logged, never raised."""
        if not self.token:
            logger.warning("TELEGRAM_BOT_TOKEN not configured, message not sent")
            return False

        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.post(
                    API_URL.format(token=self.token, method="sendMessage"),
                    json={"chat_id": chat_id, "text": text},
                )
            if response.status_code != 200:
                logger.warning(f"Telegram sendMessage returned {response.status_code}")
                return False
            return True
        except httpx.HTTPError as e:
            logger.error(f"Telegram sendMessage failed: {e}")
            return False

    def send_login_code(self, db: Session, otp: OtpCode) -> bool:
        tg_user = crud_telegram.get_by_user_id(db, otp.user_id)
        if tg_user is None:
            return False
        return self.send_message(
            tg_user.telegram_id,
            f"Your AsLogUz login code: {otp.code}\n"
            f"Valid for {settings.TELEGRAM_LOGIN_CODE_TTL_MINUTES} minutes. "
            f"Do not share it with anyone.",
        )

    def handle_update(self, db: Session, update: TelegramUpdate) -> Optional[str]:
        """Process one update and return the reply text that was sent, if any."""
        message = update.message
        if message is None or message.from_ is None:
            return None

        reply = self._reply_for(db, message)
        if reply:
            self.send_message(message.chat.id, reply)
        return reply

    def _reply_for(self, db: Session, message: TelegramMessage) -> Optional[str]:
        sender = message.from_

        if message.contact is not None:
            return self._handle_contact(db, message)

        text = (message.text or "").strip()
        if not text:
            return None

        command, _, argument = text.partition(" ")
        command = command.split("@")[0].lower()
        argument = argument.strip()

        if command == "/start":
            if argument:
                return self._link(db, message, argument)
            return f"Welcome to AsLogUz!\n\n{HELP_TEXT}"

        if command == "/help":
            return HELP_TEXT

        if command == "/status":
            tg_user = crud_telegram.get_by_telegram_id(db, sender.id)
            if tg_user is None:
                return "This Telegram account is not linked."
            return f"Linked to AsLogUz account {tg_user.user_id}."

        if command == "/unlink":
            if crud_telegram.unlink(db, sender.id):
                return "Telegram account unlinked."
            return "This Telegram account is not linked."

        if LINK_CODE_RE.match(text):
            return self._link(db, message, text)

        return "Unknown command. Send /help for the list of commands."

    def _link(self, db: Session, message: TelegramMessage, code: str) -> str:
        sender = message.from_
        tg_user = crud_telegram.consume_link_code(
            db,
            code=code,
            telegram_id=sender.id,
            username=sender.username,
            first_name=sender.first_name,
            last_name=sender.last_name,
        )
        if tg_user is None:
            return "The code is invalid or expired. Generate a new one in your profile."

        crud_security_event.log_event(
            db,
            event_type="telegram_linked",
            user_id=tg_user.user_id,
            description=f"Telegram account {sender.id} linked",
        )
        return "Your AsLogUz account is now linked. Login codes will be sent here."

    def _handle_contact(self, db: Session, message: TelegramMessage) -> str:
        """A shared contact links the account whose profile has that phone."""
        sender = message.from_
        contact = message.contact
        if contact.user_id is not None and contact.user_id != sender.id:
            return "Please share your own contact."

        profile = crud_profile.get_by_phone(db, contact.phone_number)
        if profile is None:
            return "No AsLogUz account uses this phone number. Link with /start CODE instead."

        tg_user = crud_telegram.link_account(
            db,
            user_id=profile.user_id,
            telegram_id=sender.id,
            username=sender.username,
            first_name=sender.first_name,
            last_name=sender.last_name,
            phone=contact.phone_number,
        )
        crud_security_event.log_event(
            db,
            event_type="telegram_linked",
            user_id=tg_user.user_id,
            description=f"Telegram account {sender.id} linked by phone",
        )
        return "Your AsLogUz account is now linked. Login codes will be sent here."


def get_telegram_bot() -> TelegramBot:
    return TelegramBot()
