# app/schemas/booking.py
from datetime import datetime
from typing import Optional, Union
from pydantic import Field

from app.schemas.base import CamelModel


class PaymentInfo(CamelModel):
    id: Optional[str] = None
    method: Optional[str] = None
    status: Optional[str] = None


class BookingCreate(CamelModel):
    car_id: int = Field(ge=1)
    pickup_date: str = Field(min_length=1)
    return_date: str = Field(min_length=1)
    pickup_location: Optional[str] = None
    return_location: Optional[str] = None
    verification: Optional[dict] = None   # may carry attachmentsData {idFront, idBack, license}
    total_cost: int = Field(ge=0)
    days: int = Field(ge=1)
    payment: Optional[PaymentInfo] = None


class BookingUserOut(CamelModel):
    id: Union[int, str, None] = None
    email: Optional[str] = None
    full_name: Optional[str] = None
    mobile: Optional[str] = None


class BookingCarOut(CamelModel):
    id: Union[int, str, None] = None
    name: Optional[str] = None
    type: Optional[str] = None
    fuel: Optional[str] = None
    transmission: Optional[str] = None
    price_per_day: Optional[int] = None


class BookingOut(CamelModel):
    id: Union[int, str]
    user_id: Optional[int] = None
    car_id: Optional[int] = None
    pickup_date: Optional[str] = None
    return_date: Optional[str] = None
    pickup_location: Optional[str] = None
    return_location: Optional[str] = None
    verification: Optional[dict] = None
    total_cost: Optional[int] = None
    days: Optional[int] = None
    status: str = "confirmed"
    payment: Optional[PaymentInfo] = None
    created_at: Optional[datetime] = None


class BookingFullOut(BookingOut):
    user: Optional[BookingUserOut] = None
    user_email: Optional[str] = None
    user_full_name: Optional[str] = None
    car: Optional[BookingCarOut] = None
