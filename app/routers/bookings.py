# app/routers/bookings.py
"""
Bookings.
POST /bookings        — authenticated user books a car
GET  /bookings/me     — caller's bookings
GET  /bookings/host   — bookings on cars the caller hosts
GET  /bookings        — admin, joined with user and car
"""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_hooks, get_resolver
from app.errors import NotFound
from app.schemas.booking import BookingCreate, BookingFullOut, BookingOut
from app.security import require_admin, require_auth
from app.services import booking_service
from app.services.hooks import PostCommitHooks
from app.services.read_resolution import ReadResolver
from app.utils.ids import parse_ref, require_primary

router = APIRouter()


@router.post("/bookings", response_model=BookingOut, status_code=201, summary="Create a booking")
def create_booking(body: BookingCreate, claims: dict = Depends(require_auth),
                   db: Session = Depends(get_db), hooks: PostCommitHooks = Depends(get_hooks)):
    return booking_service.create_booking(db, hooks, claims["id"], body)


@router.get("/bookings/me", response_model=List[BookingOut], summary="My bookings")
async def my_bookings(claims: dict = Depends(require_auth),
                      resolver: ReadResolver = Depends(get_resolver)):
    return await resolver.resolve_list("list_bookings", user_id=claims["id"])


@router.get("/bookings/host", response_model=List[BookingFullOut], summary="Bookings on my cars")
async def host_bookings(claims: dict = Depends(require_auth),
                        resolver: ReadResolver = Depends(get_resolver)):
    return await resolver.resolve_list("list_bookings", host_id=claims["id"], full=True)


@router.get("/bookings", response_model=List[BookingFullOut], summary="Admin — all bookings")
async def all_bookings(claims: dict = Depends(require_admin),
                       resolver: ReadResolver = Depends(get_resolver)):
    return await resolver.resolve_list("list_bookings", full=True)


@router.get("/bookings/{ref}", response_model=BookingFullOut, summary="Admin — get a booking")
async def get_booking(ref: str, claims: dict = Depends(require_admin),
                      resolver: ReadResolver = Depends(get_resolver)):
    booking = await resolver.resolve_one("get_booking", parse_ref(ref))
    if booking is None:
        raise NotFound("Booking not found", reason="booking_not_found")
    return booking


@router.delete("/bookings/{ref}", summary="Admin — delete a booking and its attachments")
def delete_booking(ref: str, claims: dict = Depends(require_admin),
                   db: Session = Depends(get_db), hooks: PostCommitHooks = Depends(get_hooks)):
    return booking_service.delete_booking(db, hooks, require_primary(parse_ref(ref)))
