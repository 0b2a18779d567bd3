import asyncio
import json

import httpx
import pytest

from app.schemas.tracking import LocationReport
from app.services.gps_tracker import GpsTracker, HttpLocationSender

TASHKENT = LocationReport(latitude=41.3111, longitude=69.2797, speed=12.5)


class RecordingSender:
    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    async def __call__(self, position):
        if self.fail:
            raise httpx.ConnectError("offline")
        self.sent.append(position)


async def test_report_is_sent_immediately():
    sender = RecordingSender()
    tracker = GpsTracker(sender, heartbeat_seconds=60)

    await tracker.report(TASHKENT)

    assert sender.sent == [TASHKENT]
    assert tracker.sent_count == 1
    assert tracker.last_position == TASHKENT


async def test_heartbeat_resends_last_position():
    sender = RecordingSender()
    tracker = GpsTracker(sender, heartbeat_seconds=0.01)
    await tracker.report(TASHKENT)

    await tracker.start()
    await asyncio.sleep(0.05)
    await tracker.stop()

    assert len(sender.sent) >= 3
    assert all(p == TASHKENT for p in sender.sent)
    assert not tracker.running


async def test_heartbeat_waits_for_first_fix():
    sender = RecordingSender()
    tracker = GpsTracker(sender, heartbeat_seconds=0.01)

    await tracker.start()
    await asyncio.sleep(0.03)
    await tracker.stop()

    assert sender.sent == []


async def test_send_failure_is_counted_not_raised():
    tracker = GpsTracker(RecordingSender(fail=True), heartbeat_seconds=60)

    await tracker.report(TASHKENT)

    assert tracker.failed_count == 1
    assert tracker.sent_count == 0


async def test_start_twice_keeps_one_loop():
    tracker = GpsTracker(RecordingSender(), heartbeat_seconds=60)
    await tracker.start()
    task = tracker._heartbeat_task

    await tracker.start()

    assert tracker._heartbeat_task is task
    await tracker.stop()


async def test_http_sender_posts_to_deal_locations():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(201, json={})

    send = HttpLocationSender(
        "https://api.asloguz.uz/", "deal_abc", "tok", transport=httpx.MockTransport(handler)
    )
    await send(TASHKENT)

    request = requests[0]
    assert str(request.url) == "https://api.asloguz.uz/api/v1/deals/deal_abc/locations"
    assert request.headers["Authorization"] == "Bearer tok"
    assert json.loads(request.content) == {
        "latitude": 41.3111,
        "longitude": 69.2797,
        "speed": 12.5,
    }


async def test_http_sender_raises_on_error_status():
    send = HttpLocationSender(
        "https://api", "deal_abc", "tok",
        transport=httpx.MockTransport(lambda r: httpx.Response(403)),
    )
    with pytest.raises(httpx.HTTPStatusError):
        await send(TASHKENT)
