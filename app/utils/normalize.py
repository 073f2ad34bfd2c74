# app/utils/normalize.py
"""Identity normalisation shared by both stores."""

import re
from typing import Optional

_NON_DIGITS = re.compile(r"\D")


def normalize_email(email: Optional[str]) -> str:
    """Trim and lowercase. Idempotent."""
    return str(email or "").strip().lower()


def normalize_mobile(mobile: Optional[str]) -> Optional[str]:
    """Strip every non-digit; empty results become None."""
    if not mobile:
        return None
    digits = _NON_DIGITS.sub("", str(mobile))
    return digits or None
