"""
Tests for the negotiation ledger and its change feed.

The ledger is the single reducer for fetched rows and feed events, so a
viewer's state after replaying events must equal the state computed from
the database.
"""

import json
from datetime import datetime, timedelta, timezone

from app.crud import crud_price_negotiation
from app.schemas.negotiation import NegotiationCreate
from app.services.negotiation_feed import (
    NegotiationFeedConsumer,
    build_event,
    channel_for,
    publish_negotiation_event,
)
from app.utils.negotiation_ledger import NegotiationLedger
from tests.utils.marketplace import CARRIER_ID, CLIENT_ID, create_order, create_response

T0 = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)


def _row(id, by, price, status="pending", minutes=0):
    return {
        "id": id,
        "proposed_by": by,
        "proposed_price": price,
        "status": status,
        "created_at": T0 + timedelta(minutes=minutes),
    }


class TestNegotiationLedger:
    def test_empty_ledger_lets_anyone_propose(self):
        ledger = NegotiationLedger(order_id="ord_1")
        assert ledger.latest is None
        assert ledger.can_propose(CLIENT_ID)

    def test_turns_alternate(self):
        ledger = NegotiationLedger.from_rows("ord_1", [_row("n1", CLIENT_ID, 100)])
        assert not ledger.can_propose(CLIENT_ID)
        assert ledger.can_propose(CARRIER_ID)

    def test_acceptance_closes_negotiation(self):
        ledger = NegotiationLedger.from_rows(
            "ord_1",
            [
                _row("n1", CLIENT_ID, 100, status="rejected"),
                _row("n2", CARRIER_ID, 120, status="accepted", minutes=1),
            ],
        )
        assert ledger.accepted.id == "n2"
        assert not ledger.can_propose(CLIENT_ID)
        assert not ledger.can_propose(CARRIER_ID)

    def test_apply_replaces_by_id(self):
        ledger = NegotiationLedger.from_rows("ord_1", [_row("n1", CLIENT_ID, 100)])
        ledger.apply(_row("n1", CLIENT_ID, 100, status="rejected"))

        assert len(ledger.entries) == 1
        assert ledger.entries[0].status == "rejected"

    def test_entries_newest_first(self):
        ledger = NegotiationLedger.from_rows(
            "ord_1",
            [_row("n1", CLIENT_ID, 100), _row("n2", CARRIER_ID, 110, minutes=5)],
        )
        assert [e.id for e in ledger.entries] == ["n2", "n1"]


class TestNegotiationFeed:
    def _negotiation(self, db):
        order = create_order(db)
        create_response(db, order)
        return crud_price_negotiation.propose(
            db,
            order_id=order.id,
            proposer_id=CLIENT_ID,
            obj_in=NegotiationCreate(proposed_price=140_000),
        )

    def test_publish_uses_order_channel(self, db_session, mock_redis):
        negotiation = self._negotiation(db_session)

        assert publish_negotiation_event(negotiation, "negotiation.created") is True

        channel, raw = mock_redis.publish.call_args.args
        assert channel == channel_for(negotiation.order_id)
        payload = json.loads(raw)
        assert payload["type"] == "negotiation.created"
        assert payload["negotiation"]["id"] == negotiation.id

    def test_publish_failure_is_swallowed(self, db_session, mock_redis):
        negotiation = self._negotiation(db_session)
        mock_redis.publish.side_effect = ConnectionError("redis down")

        assert publish_negotiation_event(negotiation, "negotiation.created") is False

    def test_consumer_matches_database_state(self, db_session):
        negotiation = self._negotiation(db_session)
        order_id = negotiation.order_id
        consumer = NegotiationFeedConsumer(NegotiationLedger(order_id=order_id), CARRIER_ID)

        consumer.handle(build_event(negotiation, "negotiation.created").model_dump_json())
        assert consumer.state() == {"can_propose": True, "accepted_price": None}

        accepted = crud_price_negotiation.accept(
            db_session, negotiation_id=negotiation.id, user_id=CARRIER_ID
        )
        consumer.handle(build_event(accepted, "negotiation.updated").model_dump_json())

        fetched = crud_price_negotiation.get_ledger(db_session, order_id)
        assert consumer.state() == {
            "can_propose": fetched.can_propose(CARRIER_ID),
            "accepted_price": 140_000,
        }

    def test_consumer_ignores_other_orders_and_garbage(self, db_session):
        negotiation = self._negotiation(db_session)
        consumer = NegotiationFeedConsumer(NegotiationLedger(order_id="ord_other"), CLIENT_ID)

        assert consumer.handle(build_event(negotiation, "negotiation.created").model_dump_json()) is None
        assert consumer.handle(b"not json") is None
        assert consumer.ledger.entries == []
