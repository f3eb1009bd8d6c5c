from __future__ import annotations

import asyncio
import logging
import threading
from typing import Dict, List, Optional, Set

from app.schemas.telemetry import TelemetrySampleOut

logger = logging.getLogger("app.distributor")

FLEET_TOPIC = "fleet"


def vehicle_topic(vehicle_id: str) -> str:
    return f"vehicle:{vehicle_id}"


class Subscription:
    """One subscriber's bounded inbox, consumed as an async iterator.

    Bound to the event loop it was created on; samples offered from other
    threads are handed over with ``call_soon_threadsafe``.
    """

    def __init__(self, topic: str, maxsize: int, loop: asyncio.AbstractEventLoop):
        self.topic = topic
        self.dropped = 0
        self._loop = loop
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    def offer(self, sample: TelemetrySampleOut) -> None:
        if self._closed or self._loop.is_closed():
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            self._put(sample)
        else:
            self._loop.call_soon_threadsafe(self._put, sample)

    def _put(self, sample: Optional[TelemetrySampleOut]) -> None:
        try:
            self._queue.put_nowait(sample)
        except asyncio.QueueFull:
            self.dropped += 1

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        # Wake a pending reader; None marks end of stream
        if not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._put_sentinel)

    def _put_sentinel(self) -> None:
        while True:
            try:
                self._queue.put_nowait(None)
                return
            except asyncio.QueueFull:
                self._queue.get_nowait()

    def __aiter__(self):
        return self

    async def __anext__(self) -> TelemetrySampleOut:
        if self._closed and self._queue.empty():
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is None:
            raise StopAsyncIteration
        return item


class TelemetryDistributor:
    """Fan-out of fresh samples to live subscribers.

    Two topics per sample: ``fleet`` and ``vehicle:{id}``. Delivery is
    best-effort and never blocks the publisher: no subscribers means the
    sample is dropped, a full inbox drops it for that subscriber only.
    """

    def __init__(self, queue_size: int = 100):
        self._queue_size = queue_size
        self._topics: Dict[str, Set[Subscription]] = {}
        # Guards the topic table only; never held while delivering
        self._lock = threading.Lock()

    def subscribe(self, topic: str, loop: Optional[asyncio.AbstractEventLoop] = None) -> Subscription:
        sub = Subscription(topic, self._queue_size, loop or asyncio.get_running_loop())
        with self._lock:
            self._topics.setdefault(topic, set()).add(sub)
        logger.debug("Subscribed to %s", topic)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            subs = self._topics.get(sub.topic)
            if subs is not None:
                subs.discard(sub)
                if not subs:
                    self._topics.pop(sub.topic, None)
        sub.close()
        logger.debug("Unsubscribed from %s (dropped=%d)", sub.topic, sub.dropped)

    def subscriber_count(self, topic: str) -> int:
        with self._lock:
            return len(self._topics.get(topic, ()))

    def publish(self, sample: TelemetrySampleOut) -> int:
        """Offer ``sample`` to every subscriber of its topics; returns how many."""
        with self._lock:
            targets: List[Subscription] = list(self._topics.get(FLEET_TOPIC, ()))
            targets.extend(self._topics.get(vehicle_topic(sample.vehicle_id), ()))
        if not targets:
            return 0

        for sub in targets:
            try:
                sub.offer(sample)
            except Exception as e:
                # A subscriber whose loop went away just misses the sample
                logger.debug("Dropped sample for %s subscriber: %s", sub.topic, e)
        return len(targets)

    def close(self) -> None:
        with self._lock:
            subs = [s for topic_subs in self._topics.values() for s in topic_subs]
            self._topics.clear()
        for sub in subs:
            sub.close()
