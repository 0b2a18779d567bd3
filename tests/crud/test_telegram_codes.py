from datetime import datetime, timedelta, timezone

import pytest

from app.core.config import settings
from app.core.exceptions import DomainValidationError, NotFoundError, PermissionDeniedError
from app.crud import crud_telegram
from tests.utils.marketplace import CLIENT_ID, create_profile

PHONE = "998901234567"


def _linked_profile(db):
    create_profile(db, CLIENT_ID, phone=PHONE)
    crud_telegram.link_account(db, user_id=CLIENT_ID, telegram_id=555)


def test_link_code_is_single_use(db_session):
    otp = crud_telegram.create_link_code(db_session, CLIENT_ID)
    assert len(otp.code) == crud_telegram.LINK_CODE_LENGTH

    tg_user = crud_telegram.consume_link_code(db_session, code=otp.code, telegram_id=777)
    assert tg_user.user_id == CLIENT_ID
    assert tg_user.telegram_id == "777"

    assert crud_telegram.consume_link_code(db_session, code=otp.code, telegram_id=888) is None
    assert crud_telegram.get_by_telegram_id(db_session, 888) is None


def test_link_code_is_case_insensitive(db_session):
    otp = crud_telegram.create_link_code(db_session, CLIENT_ID)
    tg_user = crud_telegram.consume_link_code(
        db_session, code=otp.code.lower(), telegram_id=777
    )
    assert tg_user is not None


def test_new_link_code_replaces_previous(db_session):
    first_code = crud_telegram.create_link_code(db_session, CLIENT_ID).code
    second_code = crud_telegram.create_link_code(db_session, CLIENT_ID).code
    if first_code == second_code:
        pytest.skip("random codes collided")

    assert crud_telegram.consume_link_code(db_session, code=first_code, telegram_id=1) is None
    assert crud_telegram.consume_link_code(db_session, code=second_code, telegram_id=1)


def test_expired_link_code_is_rejected(db_session):
    otp = crud_telegram.create_link_code(db_session, CLIENT_ID)
    otp.expires_at = datetime.now(timezone.utc) - timedelta(minutes=1)
    db_session.commit()

    assert crud_telegram.consume_link_code(db_session, code=otp.code, telegram_id=1) is None


def test_login_code_requires_known_phone(db_session):
    with pytest.raises(NotFoundError):
        crud_telegram.create_login_code(db_session, "+998 99 000-00-00")


def test_login_code_requires_linked_telegram(db_session):
    create_profile(db_session, CLIENT_ID, phone=PHONE)
    with pytest.raises(DomainValidationError):
        crud_telegram.create_login_code(db_session, PHONE)


def test_login_code_verifies_once(db_session):
    _linked_profile(db_session)
    otp = crud_telegram.create_login_code(db_session, "+998 90 123-45-67")

    assert crud_telegram.verify_login_code(db_session, phone=PHONE, code=otp.code) == CLIENT_ID
    with pytest.raises(DomainValidationError):
        crud_telegram.verify_login_code(db_session, phone=PHONE, code=otp.code)


def test_login_code_locks_after_max_attempts(db_session):
    _linked_profile(db_session)
    otp = crud_telegram.create_login_code(db_session, PHONE)
    wrong = "000000" if otp.code != "000000" else "111111"

    for attempt in range(settings.TELEGRAM_LOGIN_MAX_ATTEMPTS):
        with pytest.raises(DomainValidationError) as exc_info:
            crud_telegram.verify_login_code(db_session, phone=PHONE, code=wrong)
        expected_left = settings.TELEGRAM_LOGIN_MAX_ATTEMPTS - attempt - 1
        assert exc_info.value.details["attempts_left"] == expected_left

    with pytest.raises(PermissionDeniedError):
        crud_telegram.verify_login_code(db_session, phone=PHONE, code=otp.code)


def test_purge_removes_only_expired_codes(db_session):
    live = crud_telegram.create_link_code(db_session, CLIENT_ID)
    stale = crud_telegram.create_link_code(db_session, "user_other")
    stale.expires_at = datetime.now(timezone.utc) - timedelta(hours=1)
    db_session.commit()

    assert crud_telegram.purge_expired_codes(db_session) == 1
    assert crud_telegram.consume_link_code(db_session, code=live.code, telegram_id=9)
