# tests/api/v1/test_orders_api.py

import json

from tests.utils.marketplace import (
    CARRIER_ID,
    CLIENT_ID,
    OTHER_CARRIER_ID,
    create_order,
    create_profile,
)

ORDER_DATA = {
    "cargo_type": "Furniture",
    "pickup_address": "Tashkent, Chilonzor",
    "delivery_address": "Samarkand, Registan",
    "pickup_date": "2026-11-01T09:00:00Z",
    "client_price": 150000,
    "weight": 800,
}


def test_create_order(test_client):
    response = test_client.post("/api/v1/orders", json=ORDER_DATA)

    assert response.status_code == 201
    body = response.json()
    assert body["client_id"] == CLIENT_ID
    assert body["status"] == "open"
    assert body["id"].startswith("ord_")


def test_create_order_requires_addresses(test_client):
    response = test_client.post("/api/v1/orders", json={**ORDER_DATA, "pickup_address": ""})
    assert response.status_code == 422


def test_my_orders_filter_by_status(test_client, db_session):
    create_order(db_session)
    cancelled = create_order(db_session)
    test_client.post(f"/api/v1/orders/{cancelled.id}/cancel")

    response = test_client.get("/api/v1/orders/mine", params={"status": "open"})

    assert response.status_code == 200
    assert len(response.json()) == 1


def test_open_board_hides_cancelled(test_client, db_session):
    order = create_order(db_session)
    create_order(db_session)
    test_client.post(f"/api/v1/orders/{order.id}/cancel")

    ids = [o["id"] for o in test_client.get("/api/v1/orders/open").json()]
    assert order.id not in ids
    assert len(ids) == 1


def test_only_client_cancels(test_client, db_session, current_user):
    order = create_order(db_session)
    current_user.set(CARRIER_ID, "carrier")

    response = test_client.post(f"/api/v1/orders/{order.id}/cancel")

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "PERMISSION_DENIED"


def test_missing_order_is_404(test_client):
    response = test_client.get("/api/v1/orders/ord_missing")
    assert response.status_code == 404
    assert response.json()["error"]["id"] == "ord_missing"


def test_respond_and_accept_creates_deal(test_client, db_session, current_user, mock_redis):
    order = create_order(db_session)

    current_user.set(CARRIER_ID, "carrier")
    response = test_client.post(
        f"/api/v1/orders/{order.id}/responses", json={"price": 170000, "delivery_time": "2 days"}
    )
    assert response.status_code == 201
    response_id = response.json()["id"]

    duplicate = test_client.post(f"/api/v1/orders/{order.id}/responses", json={"price": 1})
    assert duplicate.status_code == 409

    assert [r["id"] for r in test_client.get("/api/v1/responses/mine").json()] == [response_id]
    assert test_client.get(f"/api/v1/orders/{order.id}/responses").status_code == 403

    current_user.set(CLIENT_ID)
    listed = test_client.get(f"/api/v1/orders/{order.id}/responses").json()
    assert [r["price"] for r in listed] == [170000]

    deal = test_client.post(f"/api/v1/responses/{response_id}/accept")
    assert deal.status_code == 201
    assert deal.json()["agreed_price"] == 170000
    assert deal.json()["status"] == "pending"

    assert test_client.get(f"/api/v1/orders/{order.id}").json()["status"] == "in_progress"
    channels = [c.args[0] for c in mock_redis.publish.call_args_list]
    assert f"notifications:{CLIENT_ID}" in channels
    assert f"notifications:{CARRIER_ID}" in channels


def test_no_responses_after_order_taken(test_client, db_session, current_user):
    order = create_order(db_session)
    test_client.post(f"/api/v1/orders/{order.id}/cancel")

    current_user.set(OTHER_CARRIER_ID, "carrier")
    response = test_client.post(f"/api/v1/orders/{order.id}/responses", json={"price": 100})

    assert response.status_code == 400


def test_carrier_cannot_create_order(test_client, current_user):
    current_user.set(CARRIER_ID, "carrier")

    response = test_client.post("/api/v1/orders", json=ORDER_DATA)

    assert response.status_code == 403
    assert response.json()["detail"] == "Client access required"


def test_client_cannot_respond_to_order(test_client, db_session, current_user):
    order = create_order(db_session)
    current_user.set("user_client_2", "client")

    response = test_client.post(f"/api/v1/orders/{order.id}/responses", json={"price": 100})

    assert response.status_code == 403
    assert response.json()["detail"] == "Carrier access required"


def test_carrier_cannot_accept_response(test_client, db_session, current_user):
    order = create_order(db_session)
    current_user.set(CARRIER_ID, "carrier")
    response_id = test_client.post(
        f"/api/v1/orders/{order.id}/responses", json={"price": 120000}
    ).json()["id"]

    accepted = test_client.post(f"/api/v1/responses/{response_id}/accept")

    assert accepted.status_code == 403


def test_new_order_is_announced_to_carriers(test_client, db_session, mock_redis):
    create_profile(db_session, CLIENT_ID)
    create_profile(db_session, CARRIER_ID, role="carrier")
    create_profile(db_session, OTHER_CARRIER_ID, role="carrier")

    response = test_client.post("/api/v1/orders", json=ORDER_DATA)
    assert response.status_code == 201

    published = {c.args[0]: json.loads(c.args[1]) for c in mock_redis.publish.call_args_list}
    assert f"notifications:{CLIENT_ID}" not in published
    announcement = published[f"notifications:{CARRIER_ID}"]
    assert announcement["type"] == "new_order"
    assert announcement["url"] == "/dashboard"
    assert "Tashkent, Chilonzor → Samarkand, Registan" in announcement["body"]
    assert f"notifications:{OTHER_CARRIER_ID}" in published
