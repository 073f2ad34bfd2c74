# app/services/booking_service.py
"""
Bookings: create with identity/licence attachments, hard delete with cascade.

Verification attachments arrive as data URLs under verification.attachmentsData
and are written to uploads/bookings/<id>/<kind>.png. The stored verification
payload keeps only presence flags (verification.attachments) so base64 blobs
never reach either store. Overlap is not checked here; availability is a
query-time concern.
"""

from sqlalchemy.orm import Session

from app.errors import BadRequest, Conflict, NotFound
from app.models.booking import ATTACHMENT_KINDS, Attachment, Booking
from app.models.car import Car
from app.models.payout_request import PayoutRequest
from app.schemas.booking import BookingCreate, BookingOut
from app.services.hooks import PostCommitHooks
from app.services.mappers import booking_from_row
from app.services.mirror_service import EntityKind
from app.utils.files import public_path, remove_tree, save_data_url, upload_path
from app.utils.json_parser import dump_json
from app.utils.logger import get_logger

logger = get_logger(__name__)


def _save_attachments(db: Session, booking: Booking, attachments_data: dict) -> list:
    saved = []
    if not isinstance(attachments_data, dict):
        return saved
    for kind in ATTACHMENT_KINDS:
        path = save_data_url(attachments_data.get(kind),
                             upload_path("bookings", str(booking.id), f"{kind}.png"))
        if path:
            att = Attachment(booking_id=booking.id, kind=kind, path=public_path(path))
            db.add(att)
            saved.append(att)
    return saved


def create_booking(db: Session, hooks: PostCommitHooks, user_id: int, body: BookingCreate) -> BookingOut:
    car = db.query(Car).filter(Car.id == body.car_id).first()
    if not car or car.deleted:
        raise BadRequest("Invalid car", reason="invalid_car")
    if not car.available:
        raise BadRequest("Car is not available for booking", reason="car_unavailable")

    verification = dict(body.verification) if body.verification is not None else None
    attachments_data = verification.pop("attachmentsData", None) if verification else None

    payment = body.payment
    booking = Booking(
        user_id=user_id, car_id=car.id,
        pickup_date=body.pickup_date, return_date=body.return_date,
        pickup_location=body.pickup_location, return_location=body.return_location,
        total_cost=body.total_cost, days=body.days, status="confirmed",
        payment_id=payment.id if payment else None,
        payment_method=payment.method if payment else None,
        payment_status=payment.status if payment else None,
    )
    db.add(booking)
    db.flush()

    attachments = _save_attachments(db, booking, attachments_data)
    if verification is not None:
        kinds = {a.kind for a in attachments}
        verification["attachments"] = {kind: kind in kinds for kind in ATTACHMENT_KINDS}
        booking.verification_json = dump_json(verification)
    db.commit()
    logger.info(f"[BOOKINGS] Created booking {booking.id} car={car.id} user={user_id} "
                f"{booking.pickup_date}..{booking.return_date} attachments={len(attachments)}")

    out = booking_from_row(booking)
    hooks.mirror(EntityKind.BOOKING, booking)
    for att in attachments:
        hooks.mirror(EntityKind.ATTACHMENT, att)
    hooks.publish("booking_created", out.model_dump(by_alias=True, mode="json", exclude={"verification"}))
    return out


def delete_booking(db: Session, hooks: PostCommitHooks, booking_id: int) -> dict:
    booking = db.query(Booking).filter(Booking.id == booking_id).first()
    if not booking:
        raise NotFound("Booking not found", reason="booking_not_found")
    if db.query(PayoutRequest.id).filter(PayoutRequest.booking_id == booking.id).first():
        raise Conflict("Booking has payout requests", reason="booking_has_payouts")

    removed = db.query(Attachment).filter(Attachment.booking_id == booking.id).delete(
        synchronize_session=False)
    db.delete(booking)
    db.commit()
    logger.info(f"[BOOKINGS] Deleted booking {booking_id} ({removed} attachments)")

    hooks.add(remove_tree, upload_path("bookings", str(booking_id)))
    hooks.delete_mirror(EntityKind.BOOKING, booking_id)
    return {"ok": True, "deleted": booking_id}
