# app/security.py
"""
Password hashing (passlib), signed tokens (python-jose) and the FastAPI
dependencies that guard authenticated routes.

Token claims: {"sub": "user" | "admin", "id": <int>, "role": ..., "exp": ...}

Users and admins live in separate tables with separate id sequences, so the
subject kind decides which table "id" refers to. User roles are "user" or
"host"; only admin subjects carry role "admin".
"""

from datetime import datetime, timedelta
from typing import Optional

from fastapi import Header
from jose import JWTError, jwt
from passlib.context import CryptContext

from app.config import settings
from app.errors import Forbidden, Unauthorized

ALGORITHM = "HS256"
USER_SUBJECT = "user"
ADMIN_SUBJECT = "admin"
SUBJECTS = (USER_SUBJECT, ADMIN_SUBJECT)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(subject_id: int, role: str, expires_delta: Optional[timedelta] = None,
                        subject: str = USER_SUBJECT) -> str:
    if subject not in SUBJECTS:
        raise ValueError(f"unknown token subject: {subject}")
    expire = datetime.utcnow() + (expires_delta or timedelta(days=settings.JWT_EXPIRE_DAYS))
    claims = {"sub": subject, "id": subject_id, "role": role, "exp": expire}
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    try:
        claims = jwt.decode(token, settings.JWT_SECRET, algorithms=[ALGORITHM])
    except JWTError:
        raise Unauthorized("Invalid token", reason="invalid_token")
    if "id" not in claims or claims.get("sub") not in SUBJECTS:
        raise Unauthorized("Invalid token", reason="invalid_token")
    return claims


def _bearer_claims(authorization: Optional[str]) -> dict:
    if not authorization or not authorization.startswith("Bearer "):
        raise Unauthorized("Authorization header missing", reason="unauthorized")
    return decode_access_token(authorization[len("Bearer "):].strip())


def require_auth(authorization: Optional[str] = Header(None)) -> dict:
    """FastAPI dependency for user endpoints — returns the verified user claims."""
    claims = _bearer_claims(authorization)
    if claims["sub"] != USER_SUBJECT:
        raise Forbidden("User account required", reason="user_token_required")
    return claims


def require_admin(authorization: Optional[str] = Header(None)) -> dict:
    claims = _bearer_claims(authorization)
    if claims["sub"] != ADMIN_SUBJECT:
        raise Forbidden("Admin access required", reason="forbidden")
    return claims


def require_user_or_admin(authorization: Optional[str] = Header(None)) -> dict:
    """Either subject; callers branch on is_admin(claims)."""
    return _bearer_claims(authorization)


def is_admin(claims: dict) -> bool:
    return claims.get("sub") == ADMIN_SUBJECT
