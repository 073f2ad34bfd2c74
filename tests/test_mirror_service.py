"""Unit tests for the mirroring layer and the secondary store accessor."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from datetime import datetime

import pytest
from unittest.mock import AsyncMock, MagicMock
from app.models.booking import Booking
from app.secondary import SecondaryStore
from app.services.mirror_service import FIELD_MAPS, MODELS, EntityKind, MirrorService, to_document
from conftest import FakeSecondary, broken_mdb, make_mdb


class TestFieldMaps:
    def test_every_column_has_exactly_one_field(self):
        for kind, model in MODELS.items():
            columns = [c.key for c in model.__table__.columns]
            fields = FIELD_MAPS[kind]
            assert sorted(fields) == sorted(columns)
            assert len(set(fields.values())) == len(columns)

    def test_booking_document_shape(self):
        booking = Booking(id=3, user_id=1, car_id=2, pickup_date="2025-10-12", return_date="2025-10-14",
                          verification_json='{"name":"A","attachments":{"idFront":true}}',
                          total_cost=200, days=2, status="confirmed", created_at=datetime(2025, 1, 1))
        doc = to_document(EntityKind.BOOKING, booking)

        assert doc["sqliteId"] == 3
        assert doc["carId"] == 2 and doc["pickupDate"] == "2025-10-12"
        assert doc["verification"] == {"name": "A", "attachments": {"idFront": True}}
        assert "verification_json" not in doc and "id" not in doc


class TestMirrorService:
    @pytest.mark.asyncio
    async def test_upsert_keyed_on_primary_id(self):
        mdb = make_mdb()
        service = MirrorService(FakeSecondary(mdb))

        outcome = await service.mirror(EntityKind.MESSAGE, {"id": 7, "name": "A", "email": "a@x.com",
                                                            "message": "hi there", "status": "new"})

        assert outcome.ok
        filter_, update = mdb["messages"].update_one.await_args.args
        assert filter_ == {"sqliteId": 7}
        assert update["$set"]["status"] == "new"
        assert mdb["messages"].update_one.await_args.kwargs == {"upsert": True}

    @pytest.mark.asyncio
    async def test_user_upsert_adopts_mirror_only_profile(self):
        mdb = make_mdb()
        await MirrorService(FakeSecondary(mdb)).mirror(EntityKind.USER, {"id": 4, "email": "b@x.com"})

        filter_ = mdb["users"].update_one.await_args.args[0]
        assert {"email": "b@x.com", "sqliteId": {"$exists": False}} in filter_["$or"]

    @pytest.mark.asyncio
    async def test_unreachable_secondary_is_a_skip(self):
        outcome = await MirrorService(FakeSecondary(None)).mirror(EntityKind.CAR, {"id": 1, "name": "X"})
        assert outcome.ok is False and outcome.skipped and outcome.reason == "secondary_unavailable"

    @pytest.mark.asyncio
    async def test_row_without_id_is_skipped(self):
        outcome = await MirrorService(FakeSecondary(make_mdb())).mirror(EntityKind.CAR, {"name": "X"})
        assert outcome.skipped and outcome.reason == "no_primary_id"

    @pytest.mark.asyncio
    async def test_write_failure_is_reported_not_raised(self):
        outcome = await MirrorService(FakeSecondary(broken_mdb())).mirror(EntityKind.CAR, {"id": 1})
        assert outcome.ok is False
        assert "connection reset" in outcome.error

    @pytest.mark.asyncio
    async def test_booking_delete_cascades_to_attachments(self):
        mdb = make_mdb()
        outcome = await MirrorService(FakeSecondary(mdb)).delete_mirror(EntityKind.BOOKING, 12)

        assert outcome.ok
        mdb["bookings"].delete_one.assert_awaited_once_with({"sqliteId": 12})
        mdb["attachments"].delete_many.assert_awaited_once_with({"bookingId": 12})


class TestSecondaryStore:
    @pytest.mark.asyncio
    async def test_unconfigured_store_returns_none(self):
        store = SecondaryStore(None)
        assert store.configured is False
        assert await store.get_database() is None
        assert await store.ping() == "disabled"

    @pytest.mark.asyncio
    async def test_connect_failure_enters_cool_down(self):
        client = MagicMock()
        client.admin.command = AsyncMock(side_effect=ConnectionError("no route"))
        factory = MagicMock(return_value=client)
        store = SecondaryStore("mongodb://db.invalid:27017", retry_seconds=60, client_factory=factory)

        assert await store.get_database() is None
        assert await store.get_database() is None
        assert factory.call_count == 1
        assert "no route" in store.last_error

    @pytest.mark.asyncio
    async def test_connection_is_cached(self):
        client = MagicMock()
        client.admin.command = AsyncMock(return_value={"ok": 1})
        handle = MagicMock()
        handle.name = "carhire"
        client.get_database.return_value = handle
        factory = MagicMock(return_value=client)
        store = SecondaryStore("mongodb://localhost:27017", db_name="carhire", client_factory=factory)

        assert await store.get_database() is handle
        assert await store.get_database() is handle
        factory.assert_called_once()
        client.get_database.assert_called_once_with("carhire")
