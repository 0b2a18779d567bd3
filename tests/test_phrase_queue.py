import asyncio

from app.services.phrase_queue import PhraseQueue


class FakeEngine:
    """Records spoken phrases; each phrase waits until released."""

    def __init__(self, block=False):
        self.spoken = []
        self.cancelled = 0
        self._release = asyncio.Event()
        if not block:
            self._release.set()

    async def speak(self, text):
        await self._release.wait()
        self.spoken.append(text)

    def cancel(self):
        self.cancelled += 1

    def release(self):
        self._release.set()


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


async def _drained(queue):
    while queue.speaking:
        await asyncio.sleep(0)


async def test_phrases_play_in_order():
    engine = FakeEngine()
    queue = PhraseQueue(engine, max_size=3, cooldown_seconds=15)

    assert queue.enqueue("Turn left")
    assert queue.enqueue("Turn right")
    await _drained(queue)

    assert engine.spoken == ["Turn left", "Turn right"]


async def test_overflow_is_dropped_not_queued():
    engine = FakeEngine(block=True)
    queue = PhraseQueue(engine, max_size=2, cooldown_seconds=0)

    results = [queue.enqueue(f"phrase {i}") for i in range(4)]

    assert results == [True, True, False, False]
    engine.release()
    await _drained(queue)
    assert engine.spoken == ["phrase 0", "phrase 1"]


async def test_repeat_within_cooldown_is_suppressed():
    clock = FakeClock()
    engine = FakeEngine()
    queue = PhraseQueue(engine, max_size=3, cooldown_seconds=15, clock=clock)

    assert queue.enqueue("Speed camera ahead")
    await _drained(queue)
    clock.now = 10.0
    assert not queue.enqueue("Speed camera ahead")

    clock.now = 16.0
    assert queue.enqueue("Speed camera ahead")
    await _drained(queue)
    assert engine.spoken == ["Speed camera ahead", "Speed camera ahead"]


async def test_expired_phrases_are_forgotten():
    clock = FakeClock()
    queue = PhraseQueue(FakeEngine(), max_size=3, cooldown_seconds=15, clock=clock)

    for i in range(200):
        clock.now = i * 100.0
        assert queue.enqueue(f"In {i} metres turn left")
        await _drained(queue)

    assert list(queue._last_queued) == ["In 199 metres turn left"]


async def test_blank_phrase_is_ignored():
    queue = PhraseQueue(FakeEngine(), max_size=3, cooldown_seconds=0)
    assert not queue.enqueue("   ")
    assert queue.pending == []


async def test_engine_failure_does_not_stop_queue():
    class FlakyEngine(FakeEngine):
        async def speak(self, text):
            if text == "bad":
                raise RuntimeError("audio device busy")
            await super().speak(text)

    engine = FlakyEngine()
    queue = PhraseQueue(engine, max_size=3, cooldown_seconds=0)
    queue.enqueue("bad")
    queue.enqueue("good")
    await _drained(queue)

    assert engine.spoken == ["good"]


async def test_clear_stops_playback():
    engine = FakeEngine(block=True)
    queue = PhraseQueue(engine, max_size=3, cooldown_seconds=0)
    queue.enqueue("one")
    queue.enqueue("two")
    await asyncio.sleep(0)

    queue.clear()

    assert queue.pending == []
    assert not queue.speaking
    assert engine.cancelled == 1
    engine.release()
    await asyncio.sleep(0)
    assert engine.spoken == []
