# tests/api/v1/test_deals_api.py

from app.core.config import settings
from tests.utils.marketplace import CARRIER_ID, CLIENT_ID, OTHER_CARRIER_ID, create_deal


def _deliver(test_client, current_user, deal_id):
    current_user.set(CARRIER_ID, "carrier")
    for status in ("accepted", "in_transit", "delivered"):
        response = test_client.patch(f"/api/v1/deals/{deal_id}/status", json={"status": status})
        assert response.status_code == 200, response.json()
    return response.json()


def test_deal_lifecycle_through_delivery(test_client, db_session, current_user):
    deal = create_deal(db_session)

    delivered = _deliver(test_client, current_user, deal.id)

    assert delivered["status"] == "delivered"
    assert delivered["started_at"] is not None
    assert delivered["completed_at"] is not None

    loyalty = test_client.get("/api/v1/loyalty").json()
    assert loyalty["account"]["balance"] == settings.LOYALTY_POINTS_DEAL_DELIVERED
    assert loyalty["transactions"][0]["type"] == "earned"


def test_client_cannot_mark_in_transit(test_client, db_session):
    deal = create_deal(db_session)
    response = test_client.patch(f"/api/v1/deals/{deal.id}/status", json={"status": "accepted"})
    assert response.status_code == 403


def test_invalid_transition_is_conflict(test_client, db_session, current_user):
    deal = create_deal(db_session)
    current_user.set(CARRIER_ID, "carrier")

    response = test_client.patch(
        f"/api/v1/deals/{deal.id}/status", json={"status": "delivered"}
    )

    assert response.status_code == 409
    assert response.json()["error"]["from"] == "pending"


def test_outsider_sees_nothing(test_client, db_session, current_user):
    deal = create_deal(db_session)
    current_user.set(OTHER_CARRIER_ID, "carrier")

    assert test_client.get(f"/api/v1/deals/{deal.id}").status_code == 403
    assert test_client.get("/api/v1/deals").json() == []


def test_chat_between_participants(test_client, db_session, current_user):
    deal = create_deal(db_session)

    sent = test_client.post(f"/api/v1/deals/{deal.id}/messages", json={"content": "Salom!"})
    assert sent.status_code == 201

    current_user.set(CARRIER_ID, "carrier")
    messages = test_client.get(f"/api/v1/deals/{deal.id}/messages").json()
    user_messages = [m["content"] for m in messages if not m["is_system"]]
    assert user_messages == ["Salom!"]
    assert any(m["is_system"] for m in messages)


def test_rating_after_delivery(test_client, db_session, current_user):
    deal = create_deal(db_session)
    _deliver(test_client, current_user, deal.id)

    current_user.set(CLIENT_ID)
    rating = test_client.post(
        f"/api/v1/deals/{deal.id}/ratings", json={"score": 5, "comment": "On time"}
    )
    assert rating.status_code == 201
    assert rating.json()["rated_id"] == CARRIER_ID

    again = test_client.post(f"/api/v1/deals/{deal.id}/ratings", json={"score": 1})
    assert again.status_code == 409

    summary = test_client.get(f"/api/v1/users/{CARRIER_ID}/ratings/summary").json()
    assert summary == {"user_id": CARRIER_ID, "average": 5.0, "count": 1}


def test_tracking_only_for_carrier(test_client, db_session, current_user):
    deal = create_deal(db_session)
    url = f"/api/v1/deals/{deal.id}/locations"
    position = {"latitude": 41.31, "longitude": 69.28, "speed": 15}

    assert test_client.post(url, json=position).status_code == 403
    assert test_client.get(f"{url}/latest").status_code == 404

    current_user.set(CARRIER_ID, "carrier")
    assert test_client.post(url, json=position).status_code == 201
    assert test_client.post(url, json=position).status_code == 201

    current_user.set(CLIENT_ID)
    assert len(test_client.get(url).json()) == 2
    assert test_client.get(f"{url}/latest").json()["latitude"] == 41.31


def test_out_of_range_position_is_rejected(test_client, db_session, current_user):
    deal = create_deal(db_session)
    current_user.set(CARRIER_ID, "carrier")

    response = test_client.post(
        f"/api/v1/deals/{deal.id}/locations", json={"latitude": 95, "longitude": 69}
    )
    assert response.status_code == 422
