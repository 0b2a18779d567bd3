# tests/api/v1/test_referrals_api.py

from app.core.config import settings
from app.crud import crud_loyalty
from tests.utils.marketplace import CARRIER_ID, CLIENT_ID, create_deal, create_profile

REFERRER_ID = "user_referrer"


def _referrer(db_session):
    return create_profile(db_session, REFERRER_ID, role="carrier", referral_code="DABC123")


def test_first_profile_save_assigns_referral_code(test_client, current_user):
    saved = test_client.put("/api/v1/profiles/me", json={"full_name": "Dilnoza"}).json()
    assert saved["referral_code"].startswith("C")
    assert len(saved["referral_code"]) == 7

    again = test_client.put("/api/v1/profiles/me", json={"full_name": "Dilnoza R."}).json()
    assert again["referral_code"] == saved["referral_code"]

    current_user.set(CARRIER_ID, "carrier")
    carrier = test_client.put("/api/v1/profiles/me", json={"full_name": "Aziz"}).json()
    assert carrier["referral_code"].startswith("D")


def test_apply_referral_code(test_client, db_session):
    _referrer(db_session)

    applied = test_client.post("/api/v1/referrals/apply", json={"code": "dabc123"})

    assert applied.status_code == 201
    assert applied.json()["referrer_id"] == REFERRER_ID
    assert applied.json()["bonus_paid"] is False
    assert test_client.post("/api/v1/referrals/apply", json={"code": "DABC123"}).status_code == 409


def test_unknown_or_own_code_is_refused(test_client, db_session, current_user):
    _referrer(db_session)

    assert test_client.post("/api/v1/referrals/apply", json={"code": "ZZZZ99"}).status_code == 404

    current_user.set(REFERRER_ID, "carrier")
    own = test_client.post("/api/v1/referrals/apply", json={"code": "DABC123"})
    assert own.status_code == 400


def test_bonus_paid_once_after_first_delivery(test_client, db_session, current_user, mock_redis):
    _referrer(db_session)
    test_client.post("/api/v1/referrals/apply", json={"code": "DABC123"})

    for _ in range(2):
        deal = create_deal(db_session)
        current_user.set(CARRIER_ID, "carrier")
        for status in ("accepted", "in_transit", "delivered"):
            response = test_client.patch(
                f"/api/v1/deals/{deal.id}/status", json={"status": status}
            )
            assert response.status_code == 200

    account = crud_loyalty.get_account(db_session, REFERRER_ID)
    assert account.balance == settings.LOYALTY_POINTS_REFERRAL_BONUS
    reasons = [t.reason for t in crud_loyalty.list_transactions(db_session, REFERRER_ID)]
    assert reasons == ["Referral bonus"]
    assert f"notifications:{REFERRER_ID}" in [c.args[0] for c in mock_redis.publish.call_args_list]

    current_user.set(REFERRER_ID, "carrier")
    summary = test_client.get("/api/v1/referrals").json()
    assert summary["referral_code"] == "DABC123"
    assert summary["paid_count"] == 1
    assert summary["pending_count"] == 0
    assert summary["referrals"][0]["referred_id"] == CLIENT_ID
