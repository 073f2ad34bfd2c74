# app/services/event_bus.py
"""
Process-wide publish/subscribe fan-out for live listeners (SSE clients).

  publish(event, payload)  — never blocks, never raises
  subscribe()              — Subscription; await get() for the next event

Delivery is at-most-once per subscriber, in publish order. No replay: a
subscriber only sees events published after it subscribed. A subscriber whose
queue is full (or closed) is dropped without affecting the others.
"""

import asyncio
import time
from typing import Optional

from app.utils.logger import get_logger

logger = get_logger(__name__)

SUBSCRIBER_QUEUE_SIZE = 100


class Subscription:
    def __init__(self, bus: "EventBus", maxsize: int):
        self._bus = bus
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self.closed = False

    def deliver(self, message: dict):
        if self.closed:
            raise RuntimeError("subscription closed")
        self._queue.put_nowait(message)

    async def get(self, timeout: Optional[float] = None) -> Optional[dict]:
        """Next event, or None on timeout."""
        try:
            return await asyncio.wait_for(self._queue.get(), timeout=timeout)
        except asyncio.TimeoutError:
            return None

    def close(self):
        if not self.closed:
            self.closed = True
            self._bus.unsubscribe(self)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.close()


class EventBus:
    def __init__(self, queue_size: int = SUBSCRIBER_QUEUE_SIZE):
        self.queue_size = queue_size
        self._subscribers: set = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> Subscription:
        sub = Subscription(self, self.queue_size)
        self._subscribers.add(sub)
        logger.info(f"[EVENTS] Subscriber joined ({len(self._subscribers)} connected)")
        return sub

    def unsubscribe(self, sub: Subscription):
        if sub in self._subscribers:
            self._subscribers.discard(sub)
            logger.info(f"[EVENTS] Subscriber left ({len(self._subscribers)} connected)")

    def publish(self, event: str, payload) -> int:
        """Fan out to every current subscriber. Returns the number reached."""
        message = {"event": event, "data": payload, "ts": int(time.time() * 1000)}
        delivered = 0
        for sub in list(self._subscribers):
            try:
                sub.deliver(message)
                delivered += 1
            except (asyncio.QueueFull, RuntimeError):
                logger.warning(f"[EVENTS] Dropping slow or closed subscriber on '{event}'")
                sub.closed = True
                self._subscribers.discard(sub)
        logger.debug(f"[EVENTS] {event} → {delivered} subscriber(s)")
        return delivered
