# tests/api/v1/test_negotiations_api.py

import json

import pytest

from tests.utils.marketplace import (
    CARRIER_ID,
    CLIENT_ID,
    OTHER_CARRIER_ID,
    create_deal,
    create_order,
    create_response,
)


@pytest.fixture
def order_with_bid(db_session):
    order = create_order(db_session)
    response = create_response(db_session, order)
    return order, response


def test_propose_counter_and_accept(test_client, current_user, order_with_bid, mock_redis):
    order, bid = order_with_bid
    url = f"/api/v1/orders/{order.id}/negotiations"

    first = test_client.post(url, json={"proposed_price": 140000, "response_id": bid.id})
    assert first.status_code == 201

    again = test_client.post(url, json={"proposed_price": 139000})
    assert again.status_code == 409
    assert again.json()["error"]["code"] == "NEGOTIATION_CONFLICT"

    current_user.set(CARRIER_ID, "carrier")
    listing = test_client.get(url).json()
    assert listing["can_propose"] is True
    assert [n["id"] for n in listing["negotiations"]] == [first.json()["id"]]

    accepted = test_client.post(f"/api/v1/negotiations/{first.json()['id']}/accept")
    assert accepted.status_code == 200
    assert accepted.json()["status"] == "accepted"

    listing = test_client.get(url).json()
    assert listing["can_propose"] is False
    assert listing["accepted_price"] == 140000

    published = [json.loads(c.args[1]) for c in mock_redis.publish.call_args_list
                 if c.args[0] == f"negotiations:{order.id}"]
    assert [p["type"] for p in published] == ["negotiation.created", "negotiation.updated"]


def test_accept_updates_existing_deal_price(test_client, db_session, current_user):
    deal = create_deal(db_session)
    current_user.set(CARRIER_ID, "carrier")
    proposal = test_client.post(
        f"/api/v1/orders/{deal.order_id}/negotiations", json={"proposed_price": 175000}
    ).json()

    current_user.set(CLIENT_ID)
    test_client.post(f"/api/v1/negotiations/{proposal['id']}/accept")

    assert test_client.get(f"/api/v1/deals/{deal.id}").json()["agreed_price"] == 175000


def test_reject_keeps_turn_with_counterparty(test_client, current_user, order_with_bid):
    order, _ = order_with_bid
    url = f"/api/v1/orders/{order.id}/negotiations"
    proposal = test_client.post(url, json={"proposed_price": 120000}).json()

    current_user.set(CARRIER_ID, "carrier")
    rejected = test_client.post(f"/api/v1/negotiations/{proposal['id']}/reject")
    assert rejected.json()["status"] == "rejected"

    counter = test_client.post(url, json={"proposed_price": 155000})
    assert counter.status_code == 201


def test_own_proposal_cannot_be_accepted(test_client, order_with_bid):
    order, _ = order_with_bid
    proposal = test_client.post(
        f"/api/v1/orders/{order.id}/negotiations", json={"proposed_price": 120000}
    ).json()

    response = test_client.post(f"/api/v1/negotiations/{proposal['id']}/accept")
    assert response.status_code == 403


def test_outsider_cannot_read_negotiations(test_client, current_user, order_with_bid):
    order, _ = order_with_bid
    current_user.set(OTHER_CARRIER_ID, "carrier")

    response = test_client.get(f"/api/v1/orders/{order.id}/negotiations")
    assert response.status_code == 403


def test_non_positive_price_is_rejected(test_client, order_with_bid):
    order, _ = order_with_bid
    response = test_client.post(
        f"/api/v1/orders/{order.id}/negotiations", json={"proposed_price": 0}
    )
    assert response.status_code == 422
