"""Unit tests for the in-process event fan-out."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import asyncio

import pytest
from app.services.event_bus import EventBus


class TestEventBus:
    @pytest.mark.asyncio
    async def test_publish_without_subscribers_is_noop(self):
        bus = EventBus()
        assert bus.publish("booking_created", {"id": 1}) == 0

    @pytest.mark.asyncio
    async def test_every_subscriber_gets_events_in_order(self):
        bus = EventBus()
        a, b = bus.subscribe(), bus.subscribe()

        bus.publish("booking_created", {"id": 1})
        bus.publish("payout_request_created", {"id": 2})

        for sub in (a, b):
            first = await sub.get(timeout=1)
            second = await sub.get(timeout=1)
            assert (first["event"], first["data"]) == ("booking_created", {"id": 1})
            assert second["event"] == "payout_request_created"
            assert isinstance(first["ts"], int)

    @pytest.mark.asyncio
    async def test_late_subscriber_sees_no_replay(self):
        bus = EventBus()
        bus.publish("booking_created", {"id": 1})
        sub = bus.subscribe()
        assert await sub.get(timeout=0.05) is None

    @pytest.mark.asyncio
    async def test_full_queue_drops_only_that_subscriber(self):
        bus = EventBus(queue_size=1)
        slow, fast = bus.subscribe(), bus.subscribe()

        bus.publish("e", 1)
        await fast.get(timeout=1)
        delivered = bus.publish("e", 2)

        assert delivered == 1
        assert slow.closed is True
        assert bus.subscriber_count == 1
        assert (await fast.get(timeout=1))["data"] == 2

    @pytest.mark.asyncio
    async def test_closed_subscription_unsubscribes(self):
        bus = EventBus()
        async with bus.subscribe():
            assert bus.subscriber_count == 1
        assert bus.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_get_times_out_with_none(self):
        sub = EventBus().subscribe()
        started = asyncio.get_running_loop().time()
        assert await sub.get(timeout=0.05) is None
        assert asyncio.get_running_loop().time() - started < 1
