# app/services/payout_service.py
"""
Host payout requests.

  pending ──approve──► approved
     └─────reject────► rejected

Only the host owning the booked car may request; one pending request per
booking. Transitions are a conditional UPDATE on status='pending', so two
concurrent decisions cannot both succeed.
"""

from datetime import datetime

from sqlalchemy.orm import Session

from app.errors import BadRequest, Conflict, Forbidden, NotFound
from app.models.booking import Booking
from app.models.car import Car
from app.models.payout_request import PayoutRequest
from app.models.user import User
from app.schemas.payout import PayoutCreate, PayoutOut
from app.services.hooks import PostCommitHooks
from app.services.mappers import payout_from_row
from app.services.mirror_service import EntityKind
from app.utils.logger import get_logger

logger = get_logger(__name__)

PENDING = "pending"
APPROVED = "approved"
REJECTED = "rejected"


def _event_payload(out: PayoutOut) -> dict:
    return out.model_dump(by_alias=True, mode="json", exclude={"host"})


def request_payout(db: Session, hooks: PostCommitHooks, host_id: int, body: PayoutCreate) -> PayoutOut:
    row = (db.query(Booking.id, Car.host_id)
           .outerjoin(Car, Car.id == Booking.car_id)
           .filter(Booking.id == body.booking_id)
           .first())
    if not row:
        raise NotFound("Booking not found", reason="booking_not_found")
    if row.host_id is None or row.host_id != host_id:
        raise Forbidden("Not owner of this booking", reason="not_booking_owner")

    pending = (db.query(PayoutRequest.id)
               .filter(PayoutRequest.booking_id == body.booking_id, PayoutRequest.status == PENDING)
               .first())
    if pending:
        raise Conflict("Request already pending for this booking", reason="payout_already_pending")

    now = datetime.utcnow()
    pr = PayoutRequest(booking_id=body.booking_id, host_id=host_id, amount=body.amount,
                       status=PENDING, note=body.note or "", created_at=now, updated_at=now)
    db.add(pr)
    db.commit()
    logger.info(f"[PAYOUTS] Host {host_id} requested {body.amount} for booking {body.booking_id} (#{pr.id})")

    out = payout_from_row(pr)
    hooks.mirror(EntityKind.PAYOUT, pr)
    hooks.publish("payout_request_created", _event_payload(out))
    return out


def _transition(db: Session, hooks: PostCommitHooks, payout_id: int, status: str) -> PayoutOut:
    pr = db.query(PayoutRequest).filter(PayoutRequest.id == payout_id).first()
    if not pr:
        raise NotFound("Payout request not found", reason="payout_not_found")
    if pr.status != PENDING:
        raise BadRequest("Already processed", reason="payout_already_processed")

    now = datetime.utcnow()
    changes = {PayoutRequest.status: status, PayoutRequest.updated_at: now}
    if status == APPROVED:
        changes[PayoutRequest.approved_at] = now
    updated = (db.query(PayoutRequest)
               .filter(PayoutRequest.id == payout_id, PayoutRequest.status == PENDING)
               .update(changes, synchronize_session=False))
    db.commit()
    if not updated:
        raise BadRequest("Already processed", reason="payout_already_processed")
    db.refresh(pr)
    logger.info(f"[PAYOUTS] Payout #{pr.id} {status}")

    out = payout_from_row(pr)
    hooks.mirror(EntityKind.PAYOUT, pr)
    hooks.publish("payout_request_updated", _event_payload(out))
    return out


def approve_payout(db: Session, hooks: PostCommitHooks, payout_id: int) -> PayoutOut:
    return _transition(db, hooks, payout_id, APPROVED)


def reject_payout(db: Session, hooks: PostCommitHooks, payout_id: int) -> PayoutOut:
    return _transition(db, hooks, payout_id, REJECTED)


def list_for_host(db: Session, host_id: int) -> list:
    rows = (db.query(PayoutRequest).filter(PayoutRequest.host_id == host_id)
            .order_by(PayoutRequest.id.desc()).all())
    return [payout_from_row(pr) for pr in rows]


def list_all(db: Session) -> list:
    rows = (db.query(PayoutRequest, User)
            .outerjoin(User, User.id == PayoutRequest.host_id)
            .order_by(PayoutRequest.id.desc())
            .all())
    return [payout_from_row(pr, host) for pr, host in rows]
