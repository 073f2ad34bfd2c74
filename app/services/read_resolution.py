# app/services/read_resolution.py
"""
Read resolution — serve a read from the secondary store when it is reachable,
otherwise (or when the secondary query fails) from the primary.

Two readers implement the same interface:
  PrimaryReader(db)   — SQLAlchemy session
  MirrorReader(mdb)   — async pymongo database

ReadResolver does one reachability check per request and picks the reader.
The chosen reader serves the whole call; results are never merged across
stores. A single-entity lookup that misses in the mirror is retried on the
primary, since the mirror may lag behind recent writes.
"""

from collections import defaultdict
from typing import List, Optional

from bson import ObjectId
from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.models.booking import Booking
from app.models.car import Car
from app.models.user import User
from app.schemas.booking import BookingFullOut, BookingOut
from app.schemas.car import AvailabilityOut, CarOut
from app.services import mappers
from app.services.availability import CANCELLED, available_for_range
from app.utils.ids import EntityRef, MirrorId, PrimaryId, public_id
from app.utils.logger import get_logger
from app.utils.normalize import normalize_email, normalize_mobile

logger = get_logger(__name__)

NOT_DELETED = {"deleted": {"$ne": True}}
NEWEST_FIRST = [("sqliteId", -1), ("_id", -1)]


class Reader:
    """Read interface shared by both stores."""

    source = "base"

    async def list_cars(self, host_id: Optional[int] = None, city: Optional[str] = None) -> List[CarOut]:
        raise NotImplementedError

    async def get_car(self, ref: EntityRef) -> Optional[CarOut]:
        raise NotImplementedError

    async def availability(self, start: str, end: str, city: Optional[str] = None) -> List[AvailabilityOut]:
        raise NotImplementedError

    async def list_bookings(self, user_id: Optional[int] = None, host_id: Optional[int] = None,
                            full: bool = False) -> List[BookingOut]:
        raise NotImplementedError

    async def get_booking(self, ref: EntityRef) -> Optional[BookingFullOut]:
        raise NotImplementedError

    async def find_user(self, email: str) -> Optional[dict]:
        """Profile fields {email, fullName, mobile} for an email, or None."""
        raise NotImplementedError

    async def mobile_taken(self, mobile: str, exclude_email: Optional[str] = None) -> bool:
        raise NotImplementedError


# ── Primary ──────────────────────────────────────────────────────────────────
class PrimaryReader(Reader):
    source = "primary"

    def __init__(self, db: Session):
        self.db = db

    def _cars_query(self):
        return (self.db.query(Car, User)
                .outerjoin(User, User.id == Car.host_id)
                .filter(Car.deleted.is_(False)))

    async def list_cars(self, host_id=None, city=None):
        q = self._cars_query()
        if host_id is not None:
            q = q.filter(Car.host_id == host_id)
        if city:
            q = q.filter(Car.city == city)
        return [mappers.car_from_row(car, host) for car, host in q.order_by(Car.id.desc()).all()]

    async def get_car(self, ref):
        if not isinstance(ref, PrimaryId):
            return None
        row = self._cars_query().filter(Car.id == ref.value).first()
        return mappers.car_from_row(*row) if row else None

    async def availability(self, start, end, city=None):
        q = self.db.query(Car.id, Car.available).filter(Car.deleted.is_(False))
        if city:
            q = q.filter(Car.city == city)
        cars = q.order_by(Car.id).all()
        if not cars:
            return []

        bookings = defaultdict(list)
        rows = (self.db.query(Booking.car_id, Booking.status, Booking.pickup_date, Booking.return_date)
                .filter(Booking.car_id.in_([c.id for c in cars]),
                        or_(Booking.status.is_(None), Booking.status != CANCELLED))
                .all())
        for car_id, status, pickup, ret in rows:
            bookings[car_id].append((status, pickup, ret))

        return [AvailabilityOut(id=c.id, available_for_range=available_for_range(
                    bool(c.available), bookings[c.id], start, end))
                for c in cars]

    async def list_bookings(self, user_id=None, host_id=None, full=False):
        if not full:
            q = self.db.query(Booking)
            if user_id is not None:
                q = q.filter(Booking.user_id == user_id)
            return [mappers.booking_from_row(b) for b in q.order_by(Booking.id.desc()).all()]

        q = (self.db.query(Booking, User, Car)
             .outerjoin(User, User.id == Booking.user_id)
             .outerjoin(Car, Car.id == Booking.car_id))
        if user_id is not None:
            q = q.filter(Booking.user_id == user_id)
        if host_id is not None:
            q = q.filter(Car.host_id == host_id)
        return [mappers.booking_full_from_row(b, u, c) for b, u, c in q.order_by(Booking.id.desc()).all()]

    async def get_booking(self, ref):
        if not isinstance(ref, PrimaryId):
            return None
        row = (self.db.query(Booking, User, Car)
               .outerjoin(User, User.id == Booking.user_id)
               .outerjoin(Car, Car.id == Booking.car_id)
               .filter(Booking.id == ref.value)
               .first())
        return mappers.booking_full_from_row(*row) if row else None

    async def find_user(self, email):
        user = (self.db.query(User)
                .filter(User.email == normalize_email(email), User.deleted.is_(False))
                .first())
        if not user:
            return None
        return {"email": user.email, "fullName": user.full_name, "mobile": user.mobile}

    async def mobile_taken(self, mobile, exclude_email=None):
        digits = normalize_mobile(mobile)
        if not digits:
            return False
        q = self.db.query(User.id).filter(User.mobile == digits)
        if exclude_email:
            q = q.filter(User.email != normalize_email(exclude_email))
        return q.first() is not None


# ── Secondary ────────────────────────────────────────────────────────────────
class MirrorReader(Reader):
    source = "mirror"

    def __init__(self, mdb):
        self.mdb = mdb

    async def _find(self, collection: str, query: dict, sort=None) -> list:
        cursor = self.mdb[collection].find(query)
        if sort:
            cursor = cursor.sort(sort)
        return await cursor.to_list(None)

    async def _by_sqlite_id(self, collection: str, ids) -> dict:
        ids = [i for i in set(ids) if i is not None]
        if not ids:
            return {}
        docs = await self._find(collection, {"sqliteId": {"$in": ids}})
        return {d["sqliteId"]: d for d in docs}

    @staticmethod
    def _ref_filter(ref: EntityRef) -> dict:
        if isinstance(ref, MirrorId):
            return {"_id": ObjectId(ref.value)}
        return {"sqliteId": ref.value}

    async def list_cars(self, host_id=None, city=None):
        query = dict(NOT_DELETED)
        if host_id is not None:
            query["hostId"] = host_id
        if city:
            query["city"] = city
        docs = await self._find("cars", query, NEWEST_FIRST)
        hosts = await self._by_sqlite_id("users", [d.get("hostId") for d in docs])
        return [mappers.car_from_doc(d, hosts.get(d.get("hostId"))) for d in docs]

    async def get_car(self, ref):
        doc = await self.mdb["cars"].find_one({**self._ref_filter(ref), **NOT_DELETED})
        if not doc:
            return None
        host = None
        if doc.get("hostId") is not None:
            host = await self.mdb["users"].find_one({"sqliteId": doc["hostId"]})
        return mappers.car_from_doc(doc, host)

    async def availability(self, start, end, city=None):
        query = dict(NOT_DELETED)
        if city:
            query["city"] = city
        # bookings reference primary car ids, so mirror-only cars are never bookable
        cars = [c for c in await self._find("cars", query, [("sqliteId", 1)]) if c.get("sqliteId") is not None]
        car_ids = [c["sqliteId"] for c in cars]

        bookings = defaultdict(list)
        if car_ids:
            docs = await self._find("bookings", {"carId": {"$in": car_ids}, "status": {"$ne": CANCELLED}})
            for b in docs:
                bookings[b.get("carId")].append((b.get("status"), b.get("pickupDate"), b.get("returnDate")))

        return [AvailabilityOut(id=public_id(c), available_for_range=available_for_range(
                    bool(c.get("available")), bookings[c["sqliteId"]], start, end))
                for c in cars]

    async def list_bookings(self, user_id=None, host_id=None, full=False):
        query = {}
        if user_id is not None:
            query["userId"] = user_id
        cars = {}
        if host_id is not None:
            host_cars = await self._find("cars", {"hostId": host_id})
            cars = {c["sqliteId"]: c for c in host_cars if c.get("sqliteId") is not None}
            if not cars:
                return []
            query["carId"] = {"$in": list(cars)}

        docs = await self._find("bookings", query, NEWEST_FIRST)
        if not full:
            return [mappers.booking_from_doc(d) for d in docs]

        users = await self._by_sqlite_id("users", [d.get("userId") for d in docs])
        missing_cars = [d.get("carId") for d in docs if d.get("carId") not in cars]
        cars.update(await self._by_sqlite_id("cars", missing_cars))
        return [mappers.booking_full_from_doc(d, users.get(d.get("userId")), cars.get(d.get("carId")))
                for d in docs]

    async def get_booking(self, ref):
        doc = await self.mdb["bookings"].find_one(self._ref_filter(ref))
        if not doc:
            return None
        user = await self.mdb["users"].find_one({"sqliteId": doc.get("userId")})
        car = await self.mdb["cars"].find_one({"sqliteId": doc.get("carId")})
        return mappers.booking_full_from_doc(doc, user, car)

    async def find_user(self, email):
        doc = await self.mdb["users"].find_one({"email": normalize_email(email), **NOT_DELETED})
        if not doc:
            return None
        return {"email": doc.get("email"), "fullName": doc.get("fullName"), "mobile": doc.get("mobile")}

    async def mobile_taken(self, mobile, exclude_email=None):
        digits = normalize_mobile(mobile)
        if not digits:
            return False
        query = {"mobile": digits}
        if exclude_email:
            query["email"] = {"$ne": normalize_email(exclude_email)}
        return await self.mdb["users"].find_one(query, projection={"_id": 1}) is not None


# ── Resolver ─────────────────────────────────────────────────────────────────
_UNRESOLVED = object()


class ReadResolver:
    def __init__(self, db: Session, secondary=None):
        self.primary = PrimaryReader(db)
        self.secondary = secondary
        self._mirror = _UNRESOLVED

    async def mirror_reader(self) -> Optional[MirrorReader]:
        """MirrorReader when the secondary is reachable; checked once per resolver."""
        if self._mirror is _UNRESOLVED:
            mdb = await self.secondary.get_database() if self.secondary is not None else None
            self._mirror = MirrorReader(mdb) if mdb is not None else None
        return self._mirror

    async def resolve_list(self, op: str, *args, **kwargs) -> list:
        mirror = await self.mirror_reader()
        if mirror is not None:
            try:
                return await getattr(mirror, op)(*args, **kwargs)
            except Exception as e:
                logger.warning(f"[READ] {op} failed on mirror, serving from primary: {e}")
        return await getattr(self.primary, op)(*args, **kwargs)

    async def resolve_one(self, op: str, ref: EntityRef):
        mirror = await self.mirror_reader()
        if mirror is not None:
            try:
                found = await getattr(mirror, op)(ref)
                if found is not None:
                    return found
                logger.debug(f"[READ] {op}({ref}) missed on mirror, trying primary")
            except Exception as e:
                logger.warning(f"[READ] {op}({ref}) failed on mirror, serving from primary: {e}")
        return await getattr(self.primary, op)(ref)

    async def in_either(self, op: str, *args) -> list:
        """Run a lookup against both stores; secondary failures count as 'no answer'."""
        results = [await getattr(self.primary, op)(*args)]
        mirror = await self.mirror_reader()
        if mirror is not None:
            try:
                results.append(await getattr(mirror, op)(*args))
            except Exception as e:
                logger.warning(f"[READ] {op} failed on mirror: {e}")
        return results
