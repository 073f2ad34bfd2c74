# app/utils/files.py
"""
Upload persistence: decodes data URLs to files under UPLOAD_DIR.
Stored paths are relative ("uploads/...") and served by the /uploads mount.
"""

import base64
import binascii
import os
import re
import shutil
from typing import Optional

from app.config import settings
from app.utils.logger import get_logger

logger = get_logger(__name__)

_DATA_URL_RE = re.compile(r"^data:(.*?);base64,(.*)$", re.DOTALL)


def upload_root() -> str:
    return os.path.abspath(settings.UPLOAD_DIR)


def upload_path(*parts: str) -> str:
    """Absolute path inside the upload root."""
    return os.path.join(upload_root(), *parts)


def public_path(abs_path: str) -> str:
    """Relative path as stored in the DB, e.g. uploads/cars/3.png."""
    rel = os.path.relpath(abs_path, upload_root()).replace(os.sep, "/")
    return f"uploads/{rel}"


def save_data_url(data_url: str, dest_path: str) -> Optional[str]:
    """Decode a base64 data URL into dest_path. Returns the path, or None if not a data URL."""
    if not isinstance(data_url, str) or not data_url.startswith("data:"):
        return None
    match = _DATA_URL_RE.match(data_url)
    if not match:
        return None
    try:
        payload = base64.b64decode(match.group(2), validate=False)
    except (binascii.Error, ValueError):
        logger.warning(f"[FILES] Undecodable data URL for {dest_path}")
        return None
    os.makedirs(os.path.dirname(dest_path), exist_ok=True)
    with open(dest_path, "wb") as f:
        f.write(payload)
    logger.info(f"[FILES] Saved {dest_path} ({len(payload)} bytes)")
    return dest_path


def remove_tree(path: str) -> None:
    """Best-effort directory removal."""
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"[FILES] Could not remove {path}: {e}")
