# app/services/phrase_queue.py
"""
Voice navigation phrase queue.

Bounded (excess phrases are dropped, not queued), suppresses a phrase that
was already queued within the cooldown window, and plays one phrase at a
time through a speech engine.
"""

import asyncio
import logging
import time
from collections import deque
from typing import Deque, Dict, Optional, Protocol

from app.core.config import settings

logger = logging.getLogger(__name__)


class SpeechEngine(Protocol):
    async def speak(self, text: str) -> None: ...

    def cancel(self) -> None: ...


class PhraseQueue:
    def __init__(
        self,
        engine: SpeechEngine,
        max_size: Optional[int] = None,
        cooldown_seconds: Optional[float] = None,
        clock=time.monotonic,
    ):
        self.engine = engine
        self.max_size = max_size if max_size is not None else settings.VOICE_QUEUE_MAX_SIZE
        self.cooldown_seconds = (
            cooldown_seconds
            if cooldown_seconds is not None
            else settings.VOICE_PHRASE_COOLDOWN_SECONDS
        )
        self._clock = clock
        self._pending: Deque[str] = deque()
        self._last_queued: Dict[str, float] = {}
        self._drain_task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> list:
        return list(self._pending)

    @property
    def speaking(self) -> bool:
        return self._drain_task is not None and not self._drain_task.done()

    def enqueue(self, text: str) -> bool:
        """Returns False when the phrase was dropped. Needs a running loop."""
        text = text.strip()
        if not text:
            return False

        now = self._clock()
        self._last_queued = {
            t: at for t, at in self._last_queued.items() if now - at < self.cooldown_seconds
        }
        if text in self._last_queued:
            return False
        if len(self._pending) >= self.max_size:
            logger.debug(f"Phrase queue full, dropping: {text}")
            return False

        self._pending.append(text)
        self._last_queued[text] = now
        if not self.speaking:
            self._drain_task = asyncio.create_task(self._drain())
        return True

    async def _drain(self):
        while self._pending:
            text = self._pending.popleft()
            try:
                await self.engine.speak(text)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning(f"Speech engine failed on '{text}': {e}")

    def clear(self):
        """Drop pending phrases and stop the one being spoken."""
        self._pending.clear()
        if self._drain_task is not None and not self._drain_task.done():
            self._drain_task.cancel()
        self._drain_task = None
        self.engine.cancel()
