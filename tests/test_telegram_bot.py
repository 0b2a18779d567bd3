"""
Tests for the Telegram bot.

Bot API calls go through httpx.MockTransport -- nothing reaches Telegram.
"""

import json

import httpx

from app.crud import crud_telegram
from app.models.security_event import SecurityEvent
from app.schemas.telegram import TelegramUpdate
from app.services.telegram_bot import HELP_TEXT, TelegramBot
from tests.utils.marketplace import CLIENT_ID, create_profile

SENDER_ID = 424242


class BotApi:
    def __init__(self, status_code=200):
        self.status_code = status_code
        self.sent = []

    def __call__(self, request):
        self.sent.append(json.loads(request.content))
        return httpx.Response(self.status_code, json={"ok": self.status_code == 200})


def _bot(api=None):
    api = api or BotApi()
    return TelegramBot(token="123:abc", transport=httpx.MockTransport(api)), api


def _update(text=None, contact=None, sender_id=SENDER_ID):
    message = {
        "message_id": 1,
        "chat": {"id": sender_id},
        "from": {"id": sender_id, "username": "driver_aziz", "first_name": "Aziz"},
    }
    if text is not None:
        message["text"] = text
    if contact is not None:
        message["contact"] = contact
    return TelegramUpdate.model_validate({"update_id": 1, "message": message})


def test_start_with_code_links_account(db_session):
    bot, api = _bot()
    otp = crud_telegram.create_link_code(db_session, CLIENT_ID)

    reply = bot.handle_update(db_session, _update(f"/start {otp.code}"))

    assert "now linked" in reply
    assert api.sent == [{"chat_id": SENDER_ID, "text": reply}]
    tg_user = crud_telegram.get_by_telegram_id(db_session, SENDER_ID)
    assert tg_user.user_id == CLIENT_ID
    assert tg_user.telegram_username == "driver_aziz"
    assert db_session.query(SecurityEvent).one().event_type == "telegram_linked"


def test_bare_code_links_account(db_session):
    bot, _ = _bot()
    otp = crud_telegram.create_link_code(db_session, CLIENT_ID)

    assert "now linked" in bot.handle_update(db_session, _update(otp.code))


def test_used_code_is_refused(db_session):
    bot, _ = _bot()
    otp = crud_telegram.create_link_code(db_session, CLIENT_ID)
    bot.handle_update(db_session, _update(f"/start {otp.code}"))

    reply = bot.handle_update(db_session, _update(f"/start {otp.code}", sender_id=1))

    assert "invalid or expired" in reply


def test_start_without_code_shows_help(db_session):
    bot, _ = _bot()
    assert HELP_TEXT in bot.handle_update(db_session, _update("/start"))


def test_status_and_unlink(db_session):
    bot, _ = _bot()
    assert "not linked" in bot.handle_update(db_session, _update("/status"))

    crud_telegram.link_account(db_session, user_id=CLIENT_ID, telegram_id=SENDER_ID)
    assert CLIENT_ID in bot.handle_update(db_session, _update("/status@AsLogUzBot"))

    assert bot.handle_update(db_session, _update("/unlink")) == "Telegram account unlinked."
    assert crud_telegram.get_by_telegram_id(db_session, SENDER_ID) is None


def test_own_contact_links_by_phone(db_session):
    create_profile(db_session, CLIENT_ID, phone="998901234567")
    bot, _ = _bot()

    reply = bot.handle_update(
        db_session,
        _update(contact={"phone_number": "+998901234567", "user_id": SENDER_ID}),
    )

    assert "now linked" in reply
    assert crud_telegram.get_by_telegram_id(db_session, SENDER_ID).phone == "998901234567"


def test_foreign_contact_is_refused(db_session):
    create_profile(db_session, CLIENT_ID, phone="998901234567")
    bot, _ = _bot()

    reply = bot.handle_update(
        db_session, _update(contact={"phone_number": "998901234567", "user_id": 1})
    )

    assert reply == "Please share your own contact."
    assert crud_telegram.get_by_telegram_id(db_session, SENDER_ID) is None


def test_unknown_text(db_session):
    bot, _ = _bot()
    assert "Unknown command" in bot.handle_update(db_session, _update("hello there"))


def test_update_without_message_is_ignored(db_session):
    bot, api = _bot()
    assert bot.handle_update(db_session, TelegramUpdate(update_id=5)) is None
    assert api.sent == []


def test_send_message_reports_failure():
    bot, _ = _bot(BotApi(status_code=403))
    assert bot.send_message(1, "hi") is False


def test_send_message_without_token():
    assert TelegramBot(token="").send_message(1, "hi") is False


def test_login_code_goes_to_linked_chat(db_session):
    create_profile(db_session, CLIENT_ID, phone="998901234567")
    crud_telegram.link_account(db_session, user_id=CLIENT_ID, telegram_id=SENDER_ID)
    otp = crud_telegram.create_login_code(db_session, "998901234567")
    bot, api = _bot()

    assert bot.send_login_code(db_session, otp) is True
    assert api.sent[0]["chat_id"] == str(SENDER_ID)
    assert otp.code in api.sent[0]["text"]
