# app/services/auth_service.py
"""
Passwordless user auth (email OTP) and admin password login.

OTP lifecycle: issued → consumed | expired | attempts_exhausted (all terminal).
  - Lookup is by (email, code, not consumed), newest first.
  - A matching code is burned (consumed + attempts+1 in one UPDATE) before any
    business check runs, so a code is spent even if the request then fails.
  - A wrong code counts an attempt against the caller's outstanding codes.
Signup codes create the user; login codes need the user in either store and
materialise a primary copy when the profile exists only in the mirror.
"""

import secrets
from datetime import datetime, timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import settings
from app.errors import BadRequest, Conflict, Forbidden, NotFound, Unauthorized
from app.models.admin import Admin
from app.models.otp_code import OtpCode
from app.models.user import User
from app.schemas.auth import AdminAuthOut, AdminOut, AuthOut, OtpRequestOut, OtpVerify
from app.security import ADMIN_SUBJECT, create_access_token, hash_password, verify_password
from app.services.hooks import PostCommitHooks
from app.services.mailer import send_otp_email
from app.services.mappers import user_from_row
from app.services.mirror_service import EntityKind
from app.services.read_resolution import ReadResolver
from app.utils.logger import get_logger
from app.utils.normalize import normalize_email, normalize_mobile

logger = get_logger(__name__)

USER_ROLES = ("user", "host")


def storage_purpose(purpose: str) -> str:
    """'reset' codes are stored (and verified) as 'login'."""
    return "login" if purpose == "reset" else purpose


def generate_code() -> str:
    return str(100000 + secrets.randbelow(900000))


def user_token_role(stored: str) -> str:
    """Users sign in as "user" or "host"; admin rights only come from the admins table."""
    return stored if stored in USER_ROLES else "user"


async def _known_anywhere(resolver: ReadResolver, email: str) -> bool:
    return any(await resolver.in_either("find_user", email))


async def _mobile_taken_anywhere(resolver: ReadResolver, mobile: str, exclude_email: str = None) -> bool:
    return any(await resolver.in_either("mobile_taken", mobile, exclude_email))


# ── OTP issue ────────────────────────────────────────────────────────────────
async def request_otp(db: Session, resolver: ReadResolver, email: str, purpose: str) -> OtpRequestOut:
    norm_email = normalize_email(email)
    stored = storage_purpose(purpose)

    if stored == "login" and not await _known_anywhere(resolver, norm_email):
        raise NotFound("Email not registered. Please sign up first.", reason="email_not_registered")
    if stored == "signup" and await _known_anywhere(resolver, norm_email):
        raise BadRequest("Email already registered", reason="email_registered")

    code = generate_code()
    expires_at = datetime.utcnow() + timedelta(minutes=settings.OTP_TTL_MINUTES)

    # A new request replaces outstanding codes for the same purpose
    db.query(OtpCode).filter(OtpCode.email == norm_email, OtpCode.purpose == stored).delete(
        synchronize_session=False)
    db.add(OtpCode(email=norm_email, code=code, purpose=stored, expires_at=expires_at,
                   attempts=0, consumed=False))
    db.commit()
    logger.info(f"[OTP] Issued {stored} code for {norm_email} (expires {expires_at.isoformat()})")

    mail = await send_otp_email(norm_email, code, purpose)
    debug = None
    if not settings.is_production:
        debug = {"code": code, "emailSent": mail["sent"], "reason": mail["reason"]}
    return OtpRequestOut(expires_at=expires_at, debug=debug)


# ── OTP verify ───────────────────────────────────────────────────────────────
def _record_failed_attempt(db: Session, email: str, now: datetime):
    db.query(OtpCode).filter(
        OtpCode.email == email, OtpCode.consumed.is_(False), OtpCode.expires_at >= now,
    ).update({OtpCode.attempts: OtpCode.attempts + 1}, synchronize_session=False)
    db.commit()


def burn_code(db: Session, email: str, code: str, purpose: str = None, now: datetime = None) -> OtpCode:
    """Validate and consume a code. Raises BadRequest for invalid/expired/exhausted codes.

    When the caller states a purpose, a code issued for another purpose is a
    failed attempt and stays unconsumed.
    """
    now = now or datetime.utcnow()
    row = (db.query(OtpCode)
           .filter(OtpCode.email == email, OtpCode.code == code, OtpCode.consumed.is_(False))
           .order_by(OtpCode.id.desc())
           .first())
    if not row:
        _record_failed_attempt(db, email, now)
        used = (db.query(OtpCode.id)
                .filter(OtpCode.email == email, OtpCode.code == code, OtpCode.consumed.is_(True))
                .first())
        if used:
            raise BadRequest("OTP already used", reason="otp_consumed")
        raise BadRequest("Invalid OTP", reason="invalid_otp")
    if purpose and storage_purpose(purpose) != row.purpose:
        _record_failed_attempt(db, email, now)
        raise BadRequest("OTP was issued for a different purpose", reason="otp_purpose_mismatch")
    if row.expires_at < now:
        raise BadRequest("OTP expired", reason="otp_expired")
    if row.attempts >= settings.OTP_MAX_ATTEMPTS:
        raise BadRequest("Too many attempts", reason="otp_attempts_exhausted")

    burned = (db.query(OtpCode)
              .filter(OtpCode.id == row.id, OtpCode.consumed.is_(False))
              .update({OtpCode.consumed: True, OtpCode.attempts: OtpCode.attempts + 1},
                      synchronize_session=False))
    db.commit()
    if not burned:
        raise BadRequest("Invalid OTP", reason="invalid_otp")
    db.refresh(row)
    return row


async def verify_otp(db: Session, resolver: ReadResolver, hooks: PostCommitHooks, body: OtpVerify) -> AuthOut:
    norm_email = normalize_email(body.email)
    mobile = normalize_mobile(body.mobile)
    otp = burn_code(db, norm_email, body.code, body.purpose)

    user = db.query(User).filter(User.email == norm_email).first()
    if user is None:
        if otp.purpose == "signup":
            if mobile and await _mobile_taken_anywhere(resolver, mobile):
                raise Conflict("Mobile number already registered", reason="mobile_taken")
            user = User(email=norm_email, full_name=body.full_name or None, mobile=mobile,
                        password_hash=None, role="user")
        else:
            user = await _shadow_from_mirror(db, resolver, norm_email)
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise Conflict("Email or mobile already registered", reason="account_conflict")
        logger.info(f"[AUTH] Created user {user.id} ({norm_email}) via {otp.purpose} OTP")
    else:
        if otp.purpose == "signup":
            raise Conflict("Email already registered", reason="email_registered")
        if user.deleted or not user.is_active:
            raise Forbidden("Account disabled", reason="account_disabled")
        if mobile and await _mobile_taken_anywhere(resolver, mobile, norm_email):
            raise Conflict("Mobile number already registered", reason="mobile_taken")
        if body.full_name:
            user.full_name = body.full_name
        if mobile:
            user.mobile = mobile
        db.commit()

    hooks.mirror(EntityKind.USER, user)
    token = create_access_token(user.id, user_token_role(user.role))
    return AuthOut(user=user_from_row(user), token=token)


async def _shadow_from_mirror(db: Session, resolver: ReadResolver, email: str) -> User:
    """Primary copy of a profile that so far exists only in the mirror."""
    profile = None
    mirror = await resolver.mirror_reader()
    if mirror is not None:
        try:
            profile = await mirror.find_user(email)
        except Exception as e:
            logger.warning(f"[AUTH] Mirror profile lookup failed for {email}: {e}")
    if not profile:
        raise NotFound("Email not registered", reason="email_not_registered")

    mobile = normalize_mobile(profile.get("mobile"))
    if mobile and db.query(User.id).filter(User.mobile == mobile).first():
        mobile = None
    logger.info(f"[AUTH] Materialising mirror-only user {email} in primary store")
    return User(email=email, full_name=profile.get("fullName"), mobile=mobile, role="user")


# ── Admins ───────────────────────────────────────────────────────────────────
def authenticate_admin(db: Session, email: str, password: str) -> AdminAuthOut:
    admin = db.query(Admin).filter(Admin.email == normalize_email(email)).first()
    if not admin or not verify_password(password, admin.password_hash):
        logger.warning(f"[AUTH] Failed admin login for {normalize_email(email)}")
        raise Unauthorized("Invalid credentials", reason="invalid_credentials")
    token = create_access_token(admin.id, "admin", subject=ADMIN_SUBJECT)
    return AdminAuthOut(admin=AdminOut(id=admin.id, email=admin.email, created_at=admin.created_at),
                        token=token)


def get_admin(db: Session, admin_id: int) -> AdminOut:
    admin = db.query(Admin).filter(Admin.id == admin_id).first()
    if not admin:
        raise NotFound("Admin not found", reason="admin_not_found")
    return AdminOut(id=admin.id, email=admin.email, created_at=admin.created_at)


def seed_default_admin(db: Session) -> bool:
    """Create the configured default admin if missing. Returns True when created."""
    email = normalize_email(settings.DEFAULT_ADMIN_EMAIL)
    if db.query(Admin.id).filter(Admin.email == email).first():
        return False
    db.add(Admin(email=email, password_hash=hash_password(settings.DEFAULT_ADMIN_PASSWORD)))
    db.commit()
    logger.info(f"[AUTH] Seeded default admin {email}")
    return True
