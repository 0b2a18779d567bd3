"""
Tests for outgoing partner webhooks.

All HTTP goes through httpx.MockTransport.
"""

import json
from unittest.mock import MagicMock

import httpx

from app.models.partner import PartnerApiKey, PartnerWebhook
from app.services import partner_webhooks


def test_deliver_posts_event_envelope():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(204)

    ok = partner_webhooks.deliver(
        "https://hub.example/hooks",
        "deal.delivered",
        {"deal_id": "deal_1"},
        transport=httpx.MockTransport(handler),
    )

    assert ok is True
    body = json.loads(seen[0].content)
    assert body["event"] == "deal.delivered"
    assert body["data"] == {"deal_id": "deal_1"}
    assert seen[0].headers["X-AsLogUz-Event"] == "deal.delivered"


def test_deliver_reports_failure_without_raising():
    transport = httpx.MockTransport(lambda request: httpx.Response(500))
    assert partner_webhooks.deliver("https://hub.example", "order.created", {}, transport) is False

    def refuse(request):
        raise httpx.ConnectError("refused")

    assert partner_webhooks.deliver(
        "https://hub.example", "order.created", {}, httpx.MockTransport(refuse)
    ) is False


def test_queue_event_only_for_subscribed_active_webhooks(db_session):
    live = PartnerApiKey(id="pak_live", user_id="user_partner", api_key="k" * 40)
    revoked = PartnerApiKey(id="pak_old", user_id="user_partner", api_key="r" * 40, is_active=False)
    db_session.add_all([live, revoked])
    db_session.add_all(
        [
            PartnerWebhook(partner_id="pak_live", url="https://a.example", events=["order.created"]),
            PartnerWebhook(partner_id="pak_old", url="https://b.example", events=["order.created"]),
        ]
    )
    db_session.commit()
    tasks = MagicMock()

    queued = partner_webhooks.queue_event(
        db_session, tasks, user_id="user_partner", event="order.created", data={"id": "ord_1"}
    )

    assert queued == 1
    tasks.add_task.assert_called_once_with(
        partner_webhooks.deliver, "https://a.example", "order.created", {"id": "ord_1"}
    )
    assert partner_webhooks.queue_event(
        db_session, tasks, user_id="user_partner", event="deal.delivered", data={}
    ) == 0
