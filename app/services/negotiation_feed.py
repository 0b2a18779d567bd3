# app/services/negotiation_feed.py
"""
Change feed for price negotiations.

Writers publish a typed NegotiationEvent on `negotiations:{order_id}` after
commit. Readers fold events into a NegotiationLedger, the same reducer the
list endpoint uses for fetched rows.
"""

import json
import logging
from typing import Iterator, Optional

from pydantic import ValidationError

from app.db.redis import redis_client, get_redis_client
from app.schemas.negotiation import Negotiation, NegotiationEvent
from app.utils.negotiation_ledger import NegotiationLedger

logger = logging.getLogger(__name__)

KEEPALIVE_SECONDS = 15.0


def channel_for(order_id: str) -> str:
    return f"negotiations:{order_id}"


def build_event(negotiation, event_type: str) -> NegotiationEvent:
    return NegotiationEvent(
        type=event_type,
        order_id=negotiation.order_id,
        negotiation=Negotiation.model_validate(negotiation),
    )


def publish_negotiation_event(negotiation, event_type: str) -> bool:
    """Best effort: a failed publish is logged and never fails the request."""
    try:
        event = build_event(negotiation, event_type)
        redis_client.publish(channel_for(event.order_id), event.model_dump_json())
        return True
    except Exception as e:
        logger.error(
            f"Failed to publish {event_type} for negotiation {negotiation.id}: {e}",
            exc_info=True,
        )
        return False


class NegotiationFeedConsumer:
    """Applies feed events to a ledger for one viewer."""

    def __init__(self, ledger: NegotiationLedger, user_id: str):
        self.ledger = ledger
        self.user_id = user_id

    def handle(self, raw) -> Optional[NegotiationEvent]:
        try:
            event = NegotiationEvent.model_validate_json(raw)
        except ValidationError:
            logger.warning(f"Dropping malformed negotiation event: {raw!r}")
            return None
        if event.order_id != self.ledger.order_id:
            return None
        self.ledger.apply(event.negotiation.model_dump())
        return event

    def state(self) -> dict:
        accepted = self.ledger.accepted
        return {
            "can_propose": self.ledger.can_propose(self.user_id),
            "accepted_price": accepted.proposed_price if accepted else None,
        }


def _sse(event: str, data: dict) -> str:
    return f"event: {event}\ndata: {json.dumps(data, default=str)}\n\n"


def stream_order_events(consumer: NegotiationFeedConsumer, snapshot: list) -> Iterator[str]:
    """
    Server-sent events: one snapshot, then one frame per feed event with the
    viewer's recomputed state. Keepalive comments let the server notice
    disconnected clients.
    """
    client = get_redis_client()
    pubsub = client.pubsub(ignore_subscribe_messages=True)
    pubsub.subscribe(channel_for(consumer.ledger.order_id))
    try:
        yield _sse("snapshot", {"negotiations": snapshot, **consumer.state()})
        while True:
            message = pubsub.get_message(timeout=KEEPALIVE_SECONDS)
            if message is None:
                yield ": keepalive\n\n"
                continue
            event = consumer.handle(message["data"])
            if event is None:
                continue
            yield _sse(
                event.type,
                {"negotiation": event.negotiation.model_dump(mode="json"), **consumer.state()},
            )
    finally:
        pubsub.close()
        client.close()
