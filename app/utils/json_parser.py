# app/utils/json_parser.py
"""
Helpers for the serialized booking verification payload.
The primary store keeps it as JSON text; the mirror keeps it as a document.
"""

import json
from typing import Any, Optional


def safe_parse_json(raw: Optional[Any]) -> Optional[dict]:
    """Parse JSON text or bytes safely. Returns None on error or empty input."""
    if raw is None or raw == "":
        return None
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    try:
        parsed = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return None
    return parsed if isinstance(parsed, dict) else None


def dump_json(data: Optional[dict]) -> Optional[str]:
    """Serialize for storage; None stays None."""
    if data is None:
        return None
    return json.dumps(data, separators=(",", ":"), default=str)

