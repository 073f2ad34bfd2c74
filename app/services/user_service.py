# app/services/user_service.py
"""
Users: admin listing with aggregates, detail view, profile/role updates and
soft delete. Deleted users stay in the table (flag + timestamp) and are
filtered out of every default query.
"""

from datetime import datetime

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.errors import Conflict, NotFound
from app.models.booking import Booking
from app.models.message import Message
from app.models.user import User
from app.schemas.user import UserAggregates, UserDetailOut, UserOut, UserSummaryOut, UserUpdate
from app.services.hooks import PostCommitHooks
from app.services.mappers import booking_from_row, message_from_row, user_from_row
from app.services.mirror_service import EntityKind
from app.utils.logger import get_logger
from app.utils.normalize import normalize_mobile

logger = get_logger(__name__)

RECENT_LIMIT = 50


def get_active_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id, User.deleted.is_(False)).first()
    if not user:
        raise NotFound("User not found", reason="user_not_found")
    return user


def list_users_with_aggregates(db: Session) -> list:
    booking_count = func.count(Booking.id)
    total_spent = func.coalesce(func.sum(Booking.total_cost), 0)
    rows = (
        db.query(User, booking_count, total_spent)
        .outerjoin(Booking, Booking.user_id == User.id)
        .filter(User.deleted.is_(False))
        .group_by(User.id)
        .order_by(User.id.desc())
        .all()
    )
    return [
        UserSummaryOut(**user_from_row(u).model_dump(), booking_count=int(count or 0), total_spent=int(spent or 0))
        for u, count, spent in rows
    ]


def get_user_detail(db: Session, user_id: int) -> UserDetailOut:
    user = get_active_user(db, user_id)
    bookings = (db.query(Booking).filter(Booking.user_id == user.id)
                .order_by(Booking.id.desc()).limit(RECENT_LIMIT).all())
    messages = (db.query(Message).filter(Message.email == user.email)
                .order_by(Message.id.desc()).limit(RECENT_LIMIT).all())
    count, spent = (db.query(func.count(Booking.id), func.coalesce(func.sum(Booking.total_cost), 0))
                    .filter(Booking.user_id == user.id).one())
    return UserDetailOut(
        user=user_from_row(user),
        aggregates=UserAggregates(booking_count=int(count or 0), total_spent=int(spent or 0),
                                  message_count=len(messages)),
        bookings=[booking_from_row(b).model_dump(by_alias=True, mode="json", exclude={"verification"})
                  for b in bookings],
        messages=[message_from_row(m).model_dump(by_alias=True, mode="json") for m in messages],
    )


def update_user(db: Session, hooks: PostCommitHooks, user_id: int, body: UserUpdate) -> UserOut:
    user = get_active_user(db, user_id)
    changes = body.model_dump(exclude_unset=True)
    if "mobile" in changes:
        changes["mobile"] = normalize_mobile(changes["mobile"])
        if changes["mobile"] and db.query(User.id).filter(
                User.mobile == changes["mobile"], User.id != user.id).first():
            raise Conflict("Mobile number already registered", reason="mobile_taken")
    for field, value in changes.items():
        if value is None and field in ("role", "is_active"):
            continue
        setattr(user, field, value)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("Mobile number already registered", reason="mobile_taken")
    logger.info(f"[USERS] Updated user {user.id}: {sorted(changes)}")
    hooks.mirror(EntityKind.USER, user)
    return user_from_row(user)


def soft_delete_user(db: Session, hooks: PostCommitHooks, user_id: int) -> dict:
    user = get_active_user(db, user_id)
    user.deleted = True
    user.is_active = False
    user.deleted_at = datetime.utcnow()
    db.commit()
    logger.info(f"[USERS] Soft-deleted user {user.id}")
    hooks.mirror(EntityKind.USER, user)
    return {"ok": True, "softDeleted": True}
