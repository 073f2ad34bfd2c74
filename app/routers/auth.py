# app/routers/auth.py
"""
User authentication — passwordless, email OTP.
POST /auth/request-otp  — issue a code (login | signup | reset)
POST /auth/verify-otp   — consume a code, returns {user, token}
POST /auth/login-password — login code for a registered email (older clients)
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_hooks, get_resolver
from app.errors import BadRequest
from app.schemas.auth import AuthOut, LoginCodeRequest, OtpRequest, OtpRequestOut, OtpVerify
from app.schemas.user import UserOut
from app.security import require_auth
from app.services import auth_service, user_service
from app.services.hooks import PostCommitHooks
from app.services.mappers import user_from_row
from app.services.read_resolution import ReadResolver

router = APIRouter()


@router.post("/auth/request-otp", response_model=OtpRequestOut, response_model_exclude_none=True,
             summary="Send a one-time code by email")
async def request_otp(body: OtpRequest, db: Session = Depends(get_db),
                      resolver: ReadResolver = Depends(get_resolver)):
    return await auth_service.request_otp(db, resolver, body.email, body.purpose)


@router.post("/auth/verify-otp", response_model=AuthOut, summary="Verify a one-time code")
async def verify_otp(body: OtpVerify, db: Session = Depends(get_db),
                     resolver: ReadResolver = Depends(get_resolver),
                     hooks: PostCommitHooks = Depends(get_hooks)):
    """Signup codes create the account; login codes may update fullName/mobile."""
    return await auth_service.verify_otp(db, resolver, hooks, body)


@router.post("/auth/login-password", response_model=OtpRequestOut, response_model_exclude_none=True,
             summary="Send a login code")
async def login_code(body: LoginCodeRequest, db: Session = Depends(get_db),
                     resolver: ReadResolver = Depends(get_resolver)):
    return await auth_service.request_otp(db, resolver, body.email, "login")


@router.post("/auth/login", summary="Password login (disabled)")
def password_login():
    raise BadRequest("Password login is disabled. Use OTP.", reason="password_login_disabled")


@router.get("/auth/me", response_model=UserOut, summary="Current user profile")
def me(claims: dict = Depends(require_auth), db: Session = Depends(get_db)):
    return user_from_row(user_service.get_active_user(db, claims["id"]))
