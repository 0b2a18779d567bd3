# app/services/gps_tracker.py
"""
Driver-side GPS reporting loop.

Every position report is sent immediately. A separate heartbeat task
re-sends the last known position at a fixed interval whether or not the
truck moved, so the client sees the carrier is still online.

Usage:
    tracker = GpsTracker(HttpLocationSender(base_url, deal_id, token))
    await tracker.start()
    await tracker.report(LocationReport(latitude=41.3, longitude=69.2))
    ...
    await tracker.stop()
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

import httpx

from app.core.config import settings
from app.schemas.tracking import LocationReport

logger = logging.getLogger(__name__)

LocationSender = Callable[[LocationReport], Awaitable[None]]


class HttpLocationSender:
    """Posts positions to the deal's location endpoint."""

    def __init__(
        self,
        base_url: str,
        deal_id: str,
        access_token: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = f"{base_url.rstrip('/')}/api/v1/deals/{deal_id}/locations"
        self.headers = {"Authorization": f"Bearer {access_token}"}
        self.timeout = 10.0
        self._transport = transport

    async def __call__(self, position: LocationReport) -> None:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(
                self.url, json=position.model_dump(exclude_none=True), headers=self.headers
            )
            response.raise_for_status()


class GpsTracker:
    def __init__(self, send: LocationSender, heartbeat_seconds: Optional[float] = None):
        self.send = send
        self.heartbeat_seconds = (
            heartbeat_seconds if heartbeat_seconds is not None else settings.GPS_HEARTBEAT_SECONDS
        )
        self.last_position: Optional[LocationReport] = None
        self.sent_count = 0
        self.failed_count = 0
        self._heartbeat_task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._heartbeat_task is not None and not self._heartbeat_task.done()

    async def start(self):
        if self.running:
            logger.warning("GPS tracker already running")
            return
        self._heartbeat_task = asyncio.create_task(self._heartbeat_loop())
        logger.info(f"GPS tracker started, heartbeat every {self.heartbeat_seconds}s")

    async def stop(self):
        if self._heartbeat_task is None:
            return
        self._heartbeat_task.cancel()
        try:
            await self._heartbeat_task
        except asyncio.CancelledError:
            pass
        self._heartbeat_task = None
        logger.info(f"GPS tracker stopped. Sent: {self.sent_count}, failed: {self.failed_count}")

    async def report(self, position: LocationReport):
        """New fix from the device; sent right away, no deduplication."""
        self.last_position = position
        await self._send(position)

    async def _send(self, position: LocationReport):
        try:
            await self.send(position)
            self.sent_count += 1
        except Exception as e:
            self.failed_count += 1
            logger.warning(f"Failed to send GPS position: {e}")

    async def _heartbeat_loop(self):
        while True:
            await asyncio.sleep(self.heartbeat_seconds)
            if self.last_position is not None:
                await self._send(self.last_position)
