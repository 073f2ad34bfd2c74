"""End-to-end API tests over an in-memory SQLite primary."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import base64
import json

import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from app.database import SessionLocal
from app.models.user import User
from app.routers.events import event_stream
from app.services.event_bus import EventBus
from app.utils.files import upload_path
from conftest import FakeSecondary, bearer, broken_mdb, make_mdb

PNG = "data:image/png;base64," + base64.b64encode(b"\x89PNG test").decode()


def make_user(email="renter@x.com", role="user", full_name="Rita Renter") -> int:
    db = SessionLocal()
    try:
        user = User(email=email, role=role, full_name=full_name)
        db.add(user)
        db.commit()
        return user.id
    finally:
        db.close()


def create_car(client, admin_headers, **fields):
    body = {"name": "Corolla", "pricePerDay": 100, "available": True}
    body.update(fields)
    resp = client.post("/api/cars", json=body, headers=admin_headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def create_booking(client, headers, car_id, pickup="2025-10-12", ret="2025-10-14", **fields):
    body = {"carId": car_id, "pickupDate": pickup, "returnDate": ret, "totalCost": 200, "days": 2}
    body.update(fields)
    return client.post("/api/bookings", json=body, headers=headers)


class TestMessagesScenario:
    def test_create_list_delete(self, client, admin_headers):
        resp = client.post("/api/messages", json={"name": "A", "email": "a@x.com", "message": "hi there"})
        assert resp.status_code == 201
        assert resp.json()["status"] == "new"
        message_id = resp.json()["id"]

        listed = client.get("/api/messages", headers=admin_headers).json()
        assert message_id in [m["id"] for m in listed]

        assert client.delete(f"/api/messages/{message_id}", headers=admin_headers).status_code == 200
        resp = client.get(f"/api/messages/{message_id}", headers=admin_headers)
        assert resp.status_code == 404
        assert resp.json()["error"] == "message_not_found"

    def test_short_message_is_validation_error(self, client):
        resp = client.post("/api/messages", json={"name": "A", "email": "a@x.com", "message": "hi"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "validation_failed"

    def test_admin_routes_need_admin_token(self, client):
        assert client.get("/api/messages").json()["error"] == "unauthorized"
        resp = client.get("/api/messages", headers=bearer(make_user()))
        assert resp.status_code == 403

    def test_reply_without_email_configured_is_503(self, client, admin_headers):
        message_id = client.post("/api/messages", json={"name": "A", "email": "a@x.com",
                                                        "message": "hi there"}).json()["id"]
        resp = client.post(f"/api/messages/{message_id}/reply", json={"reply": "thanks"}, headers=admin_headers)
        assert resp.status_code == 503
        assert resp.json()["error"] == "email_not_configured"


class TestAvailabilityScenario:
    def test_booking_blocks_overlapping_range(self, client, admin_headers):
        car = create_car(client, admin_headers)
        resp = create_booking(client, bearer(make_user()), car["id"])
        assert resp.status_code == 201
        assert resp.json()["status"] == "confirmed"

        busy = client.get("/api/cars/availability", params={"pickup": "2025-10-13", "return": "2025-10-15"}).json()
        free = client.get("/api/cars/availability", params={"pickup": "2025-10-15", "return": "2025-10-16"}).json()

        assert {"id": car["id"], "availableForRange": False} in busy
        assert {"id": car["id"], "availableForRange": True} in free

    def test_unavailable_or_unknown_car_cannot_be_booked(self, client, admin_headers):
        car = create_car(client, admin_headers, available=False)
        headers = bearer(make_user())
        assert create_booking(client, headers, car["id"]).json()["error"] == "car_unavailable"
        assert create_booking(client, headers, 999).json()["error"] == "invalid_car"


class TestSignupScenario:
    def test_signup_then_replay_is_rejected(self, client):
        resp = client.post("/api/auth/request-otp", json={"email": "New@X.com", "purpose": "signup"})
        assert resp.status_code == 200
        code = resp.json()["debug"]["code"]

        body = {"email": "new@x.com", "code": code, "fullName": "Nora New", "mobile": "555 0100"}
        resp = client.post("/api/auth/verify-otp", json=body)
        assert resp.status_code == 200
        data = resp.json()
        assert data["user"]["role"] == "user" and data["user"]["mobile"] == "5550100"

        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {data['token']}"})
        assert me.json()["email"] == "new@x.com"

        replay = client.post("/api/auth/verify-otp", json=body)
        assert replay.status_code == 400
        assert replay.json()["error"] == "otp_consumed"

    def test_login_for_unknown_email_is_404(self, client):
        resp = client.post("/api/auth/request-otp", json={"email": "ghost@x.com", "purpose": "login"})
        assert resp.status_code == 404

    def test_password_login_is_disabled(self, client):
        resp = client.post("/api/auth/login", json={"email": "a@x.com", "password": "x"})
        assert resp.json()["error"] == "password_login_disabled"

    def test_bad_admin_password_is_401(self, client):
        resp = client.post("/api/admin/login", json={"email": "admin@carhire.local", "password": "nope"})
        assert resp.status_code == 401
        assert resp.json()["error"] == "invalid_credentials"

    def test_login_password_issues_login_code(self, client):
        make_user("rita@x.com")
        resp = client.post("/api/auth/login-password", json={"email": "Rita@X.com"})
        assert resp.status_code == 200
        code = resp.json()["debug"]["code"]

        resp = client.post("/api/auth/verify-otp", json={"email": "rita@x.com", "code": code})
        assert resp.status_code == 200
        assert resp.json()["user"]["email"] == "rita@x.com"

    def test_login_password_for_unknown_email_is_404(self, client):
        resp = client.post("/api/auth/login-password", json={"email": "ghost@x.com"})
        assert resp.status_code == 404
        assert resp.json()["error"] == "email_not_registered"


class TestTokenSubjects:
    def test_user_token_is_not_an_admin_token(self, client, admin_headers):
        # first user and the seeded admin share id 1
        user = bearer(make_user())
        resp = client.get("/api/admin/me", headers=user)
        assert resp.status_code == 403
        assert resp.json()["error"] == "forbidden"
        assert client.get("/api/users", headers=user).status_code == 403
        assert client.get("/api/admin/me", headers=admin_headers).status_code == 200

    def test_admin_token_is_not_a_user_token(self, client, admin_headers):
        make_user()
        car = create_car(client, admin_headers)
        resp = create_booking(client, admin_headers, car["id"])
        assert resp.status_code == 403
        assert resp.json()["error"] == "user_token_required"
        assert client.get("/api/bookings/me", headers=admin_headers).status_code == 403
        assert client.get("/api/auth/me", headers=admin_headers).status_code == 403
        resp = client.post("/api/cars/host", json={"name": "Panda", "pricePerDay": 40}, headers=admin_headers)
        assert resp.status_code == 403

    def test_users_cannot_be_promoted_to_admin(self, client, admin_headers):
        user_id = make_user()
        resp = client.put(f"/api/users/{user_id}", json={"role": "admin"}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json()["error"] == "validation_failed"

    def test_admin_still_manages_any_car(self, client, admin_headers):
        host = make_user("host@x.com", role="host")
        car = create_car(client, admin_headers, hostId=host)
        resp = client.put(f"/api/cars/{car['id']}", json={"pricePerDay": 120}, headers=admin_headers)
        assert resp.json()["pricePerDay"] == 120
        assert client.delete(f"/api/cars/{car['id']}", headers=admin_headers).json()["softDeleted"] is True


class TestCars:
    def test_host_owns_their_listing(self, client):
        host = bearer(make_user("host@x.com", role="host"))
        other = bearer(make_user("other@x.com"))

        resp = client.post("/api/cars/host", json={"name": "Panda", "pricePerDay": 40, "imageData": PNG},
                           headers=host)
        assert resp.status_code == 201
        car = resp.json()
        assert car["image"] == f"http://testserver/uploads/cars/{car['id']}.png"
        assert car["host"]["email"] == "host@x.com"

        assert client.put(f"/api/cars/{car['id']}", json={"pricePerDay": 45}, headers=other).status_code == 403
        resp = client.put(f"/api/cars/{car['id']}", json={"pricePerDay": 45}, headers=host)
        assert resp.json()["pricePerDay"] == 45

        assert [c["id"] for c in client.get("/api/cars/mine", headers=host).json()] == [car["id"]]

        assert client.delete(f"/api/cars/{car['id']}", headers=host).json() == {"ok": True, "softDeleted": True}
        assert client.get("/api/cars").json() == []
        assert client.get(f"/api/cars/{car['id']}").status_code == 404

    def test_mirror_only_car_cannot_be_modified(self, client, admin_headers):
        resp = client.put("/api/cars/m:65f0a1b2c3d4e5f601234567", json={"name": "X"}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json()["error"] == "mirror_only_entity"


class TestBookingAttachments:
    def test_attachments_saved_and_removed_with_booking(self, client, admin_headers):
        car = create_car(client, admin_headers)
        verification = {"name": "Rita", "attachmentsData": {"idFront": PNG, "license": PNG}}
        resp = create_booking(client, bearer(make_user()), car["id"], verification=verification)
        assert resp.status_code == 201
        booking = resp.json()

        assert "attachmentsData" not in booking["verification"]
        assert booking["verification"]["attachments"] == {"idFront": True, "idBack": False, "license": True}
        folder = upload_path("bookings", str(booking["id"]))
        assert sorted(os.listdir(folder)) == ["idFront.png", "license.png"]

        full = client.get(f"/api/bookings/{booking['id']}", headers=admin_headers).json()
        assert full["user"]["email"] == "renter@x.com" and full["car"]["name"] == "Corolla"

        assert client.delete(f"/api/bookings/{booking['id']}", headers=admin_headers).status_code == 200
        assert not os.path.exists(folder)
        assert client.get(f"/api/bookings/{booking['id']}", headers=admin_headers).status_code == 404

    def test_role_scoped_listings(self, client, admin_headers):
        host_id = make_user("host@x.com", role="host")
        car = create_car(client, admin_headers, hostId=host_id)
        renter = bearer(make_user())
        create_booking(client, renter, car["id"])

        assert len(client.get("/api/bookings/me", headers=renter).json()) == 1
        hosted = client.get("/api/bookings/host", headers=bearer(host_id, "host")).json()
        assert hosted[0]["userEmail"] == "renter@x.com"
        assert len(client.get("/api/bookings", headers=admin_headers).json()) == 1


class TestUsersAdmin:
    def test_aggregates_update_and_soft_delete(self, client, admin_headers):
        car = create_car(client, admin_headers)
        user_id = make_user()
        create_booking(client, bearer(user_id), car["id"])

        [row] = client.get("/api/users", headers=admin_headers).json()
        assert (row["bookingCount"], row["totalSpent"]) == (1, 200)

        resp = client.put(f"/api/users/{user_id}", json={"role": "host"}, headers=admin_headers)
        assert resp.json()["role"] == "host"

        detail = client.get(f"/api/users/{user_id}", headers=admin_headers).json()
        assert detail["aggregates"]["bookingCount"] == 1

        assert client.delete(f"/api/users/{user_id}", headers=admin_headers).json()["softDeleted"] is True
        assert client.get("/api/users", headers=admin_headers).json() == []


class TestPayoutsApi:
    def test_request_and_approve(self, client, admin_headers):
        host_id = make_user("host@x.com", role="host")
        car = create_car(client, admin_headers, hostId=host_id)
        booking = create_booking(client, bearer(make_user()), car["id"]).json()
        host = bearer(host_id, "host")

        resp = client.post("/api/payouts/request", json={"bookingId": booking["id"], "amount": 150}, headers=host)
        assert resp.status_code == 201
        payout_id = resp.json()["id"]

        dup = client.post("/api/payouts/request", json={"bookingId": booking["id"], "amount": 150}, headers=host)
        assert dup.status_code == 409

        assert client.post(f"/api/payouts/{payout_id}/approve", headers=admin_headers).json()["status"] == "approved"
        again = client.post(f"/api/payouts/{payout_id}/reject", headers=admin_headers)
        assert again.status_code == 400
        assert client.get("/api/payouts/mine", headers=host).json()[0]["status"] == "approved"


class TestMirroring:
    def test_writes_are_mirrored_after_commit(self, client):
        mdb = make_mdb()
        client.app.state.secondary = FakeSecondary(mdb)

        resp = client.post("/api/messages", json={"name": "A", "email": "a@x.com", "message": "hi there"})

        filter_, update = mdb["messages"].update_one.await_args.args
        assert filter_ == {"sqliteId": resp.json()["id"]}
        assert update["$set"]["email"] == "a@x.com"

    @pytest.mark.parametrize("mdb_factory", [lambda: None, broken_mdb], ids=["unreachable", "failing"])
    def test_secondary_outage_never_changes_write_responses(self, client, admin_headers, mdb_factory):
        client.app.state.secondary = FakeSecondary(mdb_factory())

        assert client.post("/api/messages", json={"name": "A", "email": "a@x.com",
                                                  "message": "hi there"}).status_code == 201
        car = create_car(client, admin_headers)
        assert create_booking(client, bearer(make_user()), car["id"]).status_code == 201
        assert client.put(f"/api/cars/{car['id']}", json={"seats": 4}, headers=admin_headers).status_code == 200

        cars = client.get("/api/cars").json()
        assert [c["id"] for c in cars] == [car["id"]]
        health = client.get("/api/health").json()
        assert health["database"] == "ok" and health["status"] == "ok"

    @pytest.mark.parametrize("mdb_factory", [lambda: None, broken_mdb], ids=["unreachable", "failing"])
    def test_secondary_outage_never_changes_other_writes(self, client, admin_headers, mdb_factory):
        client.app.state.secondary = FakeSecondary(mdb_factory())

        # signup, profile update, soft delete
        resp = client.post("/api/auth/request-otp", json={"email": "n@x.com", "purpose": "signup"})
        code = resp.json()["debug"]["code"]
        resp = client.post("/api/auth/verify-otp", json={"email": "n@x.com", "code": code, "fullName": "Nora"})
        assert resp.status_code == 200
        user_id = resp.json()["user"]["id"]
        assert client.put(f"/api/users/{user_id}", json={"fullName": "Nora N"},
                          headers=admin_headers).status_code == 200

        # reply and delete a message
        message_id = client.post("/api/messages", json={"name": "A", "email": "a@x.com",
                                                        "message": "hi there"}).json()["id"]
        with patch("app.services.message_service.send_reply_email", new=AsyncMock()):
            resp = client.post(f"/api/messages/{message_id}/reply", json={"reply": "thanks"},
                               headers=admin_headers)
        assert resp.json()["status"] == "replied"
        assert client.delete(f"/api/messages/{message_id}", headers=admin_headers).status_code == 200

        # payouts, then booking and car removal
        host_id = make_user("host@x.com", role="host")
        host = bearer(host_id, "host")
        car = create_car(client, admin_headers, hostId=host_id)
        first = create_booking(client, bearer(make_user()), car["id"]).json()
        second = create_booking(client, bearer(make_user("r2@x.com")), car["id"],
                                pickup="2025-11-01", ret="2025-11-03").json()
        third = create_booking(client, bearer(make_user("r3@x.com")), car["id"],
                               pickup="2025-12-01", ret="2025-12-03").json()
        approved = client.post("/api/payouts/request", json={"bookingId": first["id"], "amount": 150},
                               headers=host).json()
        rejected = client.post("/api/payouts/request", json={"bookingId": second["id"], "amount": 150},
                               headers=host).json()
        assert client.post(f"/api/payouts/{approved['id']}/approve", headers=admin_headers).status_code == 200
        assert client.post(f"/api/payouts/{rejected['id']}/reject", headers=admin_headers).status_code == 200

        assert client.delete(f"/api/bookings/{third['id']}", headers=admin_headers).status_code == 200
        assert client.delete(f"/api/cars/{car['id']}", headers=admin_headers).json()["softDeleted"] is True
        assert client.delete(f"/api/users/{user_id}", headers=admin_headers).json()["softDeleted"] is True
        assert client.get("/api/cars").json() == []


class TestEventStream:
    @pytest.mark.asyncio
    async def test_stream_sends_connected_then_events(self):
        bus = EventBus()
        request = MagicMock()
        request.is_disconnected = AsyncMock(return_value=False)
        stream = event_stream(request, bus, keepalive=0.05)

        first = await stream.__anext__()
        assert first.startswith("event: connected")

        assert await stream.__anext__() == ": keep-alive\n\n"

        bus.publish("booking_created", {"id": 1})
        frame = await stream.__anext__()
        event_line, data_line = frame.strip().split("\n")
        assert event_line == "event: booking_created"
        assert json.loads(data_line[len("data: "):])["data"] == {"id": 1}

        await stream.aclose()
        assert bus.subscriber_count == 0
