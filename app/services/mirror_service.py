# app/services/mirror_service.py
"""
Mirroring layer — best-effort copy of primary writes into the secondary store.

Contract:
  mirror(kind, row)             → MirrorOutcome   upsert keyed by sqliteId
  delete_mirror(kind, primary_id) → MirrorOutcome delete + dependent cascade

Neither call raises. Callers schedule them after the primary commit
(see services/hooks.py) and only log the outcome.

Field mapping is derived from each model's columns: `id` → `sqliteId`,
`verification_json` → `verification` (decoded), every other column
snake_case → camelCase. Every column therefore has exactly one counterpart.
"""

import enum
from dataclasses import dataclass
from typing import Optional, Union

from app.models.booking import Attachment, Booking
from app.models.car import Car
from app.models.message import Message
from app.models.payout_request import PayoutRequest
from app.models.user import User
from app.utils.json_parser import safe_parse_json
from app.utils.logger import get_logger

logger = get_logger(__name__)


class EntityKind(str, enum.Enum):
    USER = "users"
    CAR = "cars"
    BOOKING = "bookings"
    ATTACHMENT = "attachments"
    MESSAGE = "messages"
    PAYOUT = "payout_requests"


MODELS = {
    EntityKind.USER: User,
    EntityKind.CAR: Car,
    EntityKind.BOOKING: Booking,
    EntityKind.ATTACHMENT: Attachment,
    EntityKind.MESSAGE: Message,
    EntityKind.PAYOUT: PayoutRequest,
}

_FIELD_OVERRIDES = {
    "id": "sqliteId",
    "verification_json": "verification",
}

_VALUE_DECODERS = {
    (EntityKind.BOOKING, "verification_json"): safe_parse_json,
}

# Derived collections removed together with their parent document
CASCADES = {
    EntityKind.BOOKING: [(EntityKind.ATTACHMENT, "bookingId")],
}


def to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _build_field_map(model) -> dict:
    return {c.key: _FIELD_OVERRIDES.get(c.key, to_camel(c.key)) for c in model.__table__.columns}


FIELD_MAPS = {kind: _build_field_map(model) for kind, model in MODELS.items()}


@dataclass
class MirrorOutcome:
    ok: bool
    skipped: bool = False
    reason: Optional[str] = None
    error: Optional[str] = None


def row_snapshot(row) -> dict:
    """Column values of an ORM row as a plain dict (safe to use after the session closes)."""
    if isinstance(row, dict):
        return dict(row)
    return {c.key: getattr(row, c.key) for c in row.__table__.columns}


def to_document(kind: EntityKind, row: Union[dict, object]) -> dict:
    """Rename primary columns to secondary field names."""
    data = row_snapshot(row)
    doc = {}
    for column, field in FIELD_MAPS[kind].items():
        if column not in data:
            continue
        value = data[column]
        decoder = _VALUE_DECODERS.get((kind, column))
        doc[field] = decoder(value) if decoder else value
    return doc


def _match_filter(kind: EntityKind, doc: dict) -> dict:
    if kind == EntityKind.USER and doc.get("email"):
        # Adopt a mirror-only profile with the same email instead of duplicating it
        return {"$or": [{"sqliteId": doc["sqliteId"]},
                        {"email": doc["email"], "sqliteId": {"$exists": False}}]}
    return {"sqliteId": doc["sqliteId"]}


class MirrorService:
    def __init__(self, secondary):
        self.secondary = secondary

    async def mirror(self, kind: EntityKind, row) -> MirrorOutcome:
        try:
            doc = to_document(kind, row)
            if doc.get("sqliteId") is None:
                return MirrorOutcome(ok=False, skipped=True, reason="no_primary_id")
            mdb = await self.secondary.get_database()
            if mdb is None:
                logger.debug(f"[MIRROR] skip {kind.value}#{doc['sqliteId']}: secondary unavailable")
                return MirrorOutcome(ok=False, skipped=True, reason="secondary_unavailable")
            await mdb[kind.value].update_one(_match_filter(kind, doc), {"$set": doc}, upsert=True)
            logger.info(f"[MIRROR] upsert {kind.value}#{doc['sqliteId']}")
            return MirrorOutcome(ok=True)
        except Exception as e:
            logger.warning(f"[MIRROR] upsert {kind.value} failed: {e}")
            return MirrorOutcome(ok=False, error=str(e) or e.__class__.__name__)

    async def delete_mirror(self, kind: EntityKind, primary_id: int) -> MirrorOutcome:
        try:
            mdb = await self.secondary.get_database()
            if mdb is None:
                return MirrorOutcome(ok=False, skipped=True, reason="secondary_unavailable")
            await mdb[kind.value].delete_one({"sqliteId": primary_id})
            for child_kind, foreign_key in CASCADES.get(kind, []):
                await mdb[child_kind.value].delete_many({foreign_key: primary_id})
            logger.info(f"[MIRROR] delete {kind.value}#{primary_id}")
            return MirrorOutcome(ok=True)
        except Exception as e:
            logger.warning(f"[MIRROR] delete {kind.value}#{primary_id} failed: {e}")
            return MirrorOutcome(ok=False, error=str(e) or e.__class__.__name__)
