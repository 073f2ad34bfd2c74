# app/services/mappers.py
"""
Shape primary rows and secondary documents into the same public DTOs.

*_from_row  — SQLAlchemy rows, snake_case columns
*_from_doc  — mirror documents, camelCase fields (see mirror_service.FIELD_MAPS)

Join enrichment (host on a car, user/car on a booking, host on a payout) is
always built from the store that served the base entity.
"""

from typing import Optional

from app.schemas.booking import BookingCarOut, BookingFullOut, BookingOut, BookingUserOut, PaymentInfo
from app.schemas.car import CarOut, HostOut
from app.schemas.message import MessageOut
from app.schemas.payout import PayoutHostOut, PayoutOut
from app.schemas.user import UserOut
from app.utils.ids import public_id
from app.utils.json_parser import safe_parse_json


# ── Users ────────────────────────────────────────────────────────────────────
def user_from_row(user) -> UserOut:
    return UserOut(
        id=user.id, email=user.email, full_name=user.full_name, mobile=user.mobile,
        role=user.role or "user", is_active=bool(user.is_active), created_at=user.created_at,
    )



# ── Cars ─────────────────────────────────────────────────────────────────────
def host_from_row(user) -> Optional[HostOut]:
    if user is None:
        return None
    return HostOut(id=user.id, email=user.email, full_name=user.full_name, mobile=user.mobile)


def host_from_doc(doc: Optional[dict]) -> Optional[HostOut]:
    if not doc:
        return None
    return HostOut(id=public_id(doc), email=doc.get("email"),
                   full_name=doc.get("fullName"), mobile=doc.get("mobile"))


def car_from_row(car, host=None) -> CarOut:
    return CarOut(
        id=car.id, name=car.name, type=car.type, fuel=car.fuel, transmission=car.transmission,
        price_per_day=car.price_per_day or 0, rating=car.rating, seats=car.seats, image=car.image,
        city=car.city, brand=car.brand, description=car.description,
        available=bool(car.available), host_id=car.host_id, host=host_from_row(host),
        created_at=car.created_at,
    )


def car_from_doc(doc: dict, host_doc: Optional[dict] = None) -> CarOut:
    return CarOut(
        id=public_id(doc), name=doc.get("name") or "", type=doc.get("type"), fuel=doc.get("fuel"),
        transmission=doc.get("transmission"), price_per_day=int(doc.get("pricePerDay") or 0),
        rating=doc.get("rating"), seats=doc.get("seats"), image=doc.get("image"),
        city=doc.get("city"), brand=doc.get("brand"), description=doc.get("description"),
        available=bool(doc.get("available")), host_id=doc.get("hostId"),
        host=host_from_doc(host_doc), created_at=doc.get("createdAt"),
    )


# ── Bookings ─────────────────────────────────────────────────────────────────
def _payment(payment_id, method, status) -> Optional[PaymentInfo]:
    if not payment_id:
        return None
    return PaymentInfo(id=payment_id, method=method, status=status)


def booking_from_row(booking) -> BookingOut:
    return BookingOut(**_booking_row_fields(booking))


def _booking_row_fields(b) -> dict:
    return dict(
        id=b.id, user_id=b.user_id, car_id=b.car_id,
        pickup_date=b.pickup_date, return_date=b.return_date,
        pickup_location=b.pickup_location, return_location=b.return_location,
        verification=safe_parse_json(b.verification_json),
        total_cost=b.total_cost, days=b.days, status=b.status or "confirmed",
        payment=_payment(b.payment_id, b.payment_method, b.payment_status),
        created_at=b.created_at,
    )


def booking_full_from_row(booking, user=None, car=None) -> BookingFullOut:
    return BookingFullOut(
        **_booking_row_fields(booking),
        user=BookingUserOut(id=user.id, email=user.email, full_name=user.full_name,
                            mobile=user.mobile) if user is not None else None,
        user_email=user.email if user is not None else None,
        user_full_name=user.full_name if user is not None else None,
        car=BookingCarOut(id=car.id, name=car.name, type=car.type, fuel=car.fuel,
                          transmission=car.transmission,
                          price_per_day=car.price_per_day) if car is not None else None,
    )


def _booking_doc_fields(d: dict) -> dict:
    return dict(
        id=public_id(d), user_id=d.get("userId"), car_id=d.get("carId"),
        pickup_date=d.get("pickupDate"), return_date=d.get("returnDate"),
        pickup_location=d.get("pickupLocation"), return_location=d.get("returnLocation"),
        verification=safe_parse_json(d.get("verification")),
        total_cost=d.get("totalCost"), days=d.get("days"), status=d.get("status") or "confirmed",
        payment=_payment(d.get("paymentId"), d.get("paymentMethod"), d.get("paymentStatus")),
        created_at=d.get("createdAt"),
    )


def booking_from_doc(doc: dict) -> BookingOut:
    return BookingOut(**_booking_doc_fields(doc))


def booking_full_from_doc(doc: dict, user_doc: Optional[dict] = None,
                          car_doc: Optional[dict] = None) -> BookingFullOut:
    return BookingFullOut(
        **_booking_doc_fields(doc),
        user=BookingUserOut(id=public_id(user_doc), email=user_doc.get("email"),
                            full_name=user_doc.get("fullName"),
                            mobile=user_doc.get("mobile")) if user_doc else None,
        user_email=user_doc.get("email") if user_doc else None,
        user_full_name=user_doc.get("fullName") if user_doc else None,
        car=BookingCarOut(id=public_id(car_doc), name=car_doc.get("name"), type=car_doc.get("type"),
                          fuel=car_doc.get("fuel"), transmission=car_doc.get("transmission"),
                          price_per_day=car_doc.get("pricePerDay")) if car_doc else None,
    )


# ── Messages / payouts (primary only) ────────────────────────────────────────
def message_from_row(msg) -> MessageOut:
    return MessageOut(id=msg.id, name=msg.name, email=msg.email, message=msg.message,
                      status=msg.status, created_at=msg.created_at)


def payout_from_row(pr, host=None) -> PayoutOut:
    return PayoutOut(
        id=pr.id, booking_id=pr.booking_id, host_id=pr.host_id, amount=pr.amount,
        status=pr.status, note=pr.note or None, created_at=pr.created_at,
        updated_at=pr.updated_at, approved_at=pr.approved_at,
        host=PayoutHostOut(id=host.id, email=host.email,
                           full_name=host.full_name) if host is not None else None,
    )
