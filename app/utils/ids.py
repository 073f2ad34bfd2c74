# app/utils/ids.py
"""
Public entity references.

Rows that exist in the primary store are addressed by their numeric id.
Documents that exist only in the secondary store (no `sqliteId`) are exposed
as "m:<objectid>" so follow-up calls can be routed to the store that owns them.
"""

import re
from dataclasses import dataclass
from typing import Union

from app.errors import BadRequest

MIRROR_PREFIX = "m:"
_OBJECT_ID_RE = re.compile(r"^[0-9a-fA-F]{24}$")


@dataclass(frozen=True)
class PrimaryId:
    value: int

    def __str__(self):
        return str(self.value)


@dataclass(frozen=True)
class MirrorId:
    value: str   # hex ObjectId

    def __str__(self):
        return f"{MIRROR_PREFIX}{self.value}"


EntityRef = Union[PrimaryId, MirrorId]


def parse_ref(raw: str) -> EntityRef:
    """Parse a path parameter into a PrimaryId or MirrorId. Raises BadRequest."""
    raw = (raw or "").strip()
    if raw.isdigit() and int(raw) > 0:
        return PrimaryId(int(raw))
    if raw.startswith(MIRROR_PREFIX) and _OBJECT_ID_RE.match(raw[len(MIRROR_PREFIX):]):
        return MirrorId(raw[len(MIRROR_PREFIX):].lower())
    raise BadRequest(f"Invalid id: {raw!r}", reason="invalid_id")


def require_primary(ref: EntityRef) -> int:
    """Mutations only target primary rows; mirror-only documents are read-only."""
    if isinstance(ref, MirrorId):
        raise BadRequest("Entity exists only in the mirror and cannot be modified",
                         reason="mirror_only_entity")
    return ref.value


def public_id(doc: dict):
    """Public id for a secondary document: its primary id when mirrored, else a tagged id."""
    if doc.get("sqliteId") is not None:
        return doc["sqliteId"]
    return str(MirrorId(str(doc.get("_id"))))
