# app/schemas/car.py
from datetime import datetime
from typing import Optional, Union
from pydantic import Field

from app.schemas.base import CamelModel


class HostOut(CamelModel):
    id: Union[int, str]
    email: Optional[str] = None
    full_name: Optional[str] = None
    mobile: Optional[str] = None


class CarOut(CamelModel):
    id: Union[int, str]
    name: str
    type: Optional[str] = None
    fuel: Optional[str] = None
    transmission: Optional[str] = None
    price_per_day: int
    rating: Optional[float] = 0
    seats: Optional[int] = None
    image: Optional[str] = None
    city: Optional[str] = None
    brand: Optional[str] = None
    description: Optional[str] = None
    available: bool = True
    host_id: Optional[int] = None
    host: Optional[HostOut] = None
    created_at: Optional[datetime] = None


class CarCreate(CamelModel):
    name: str = Field(min_length=1)
    price_per_day: int = Field(ge=0)
    type: Optional[str] = None
    fuel: Optional[str] = None
    transmission: Optional[str] = None
    rating: float = 0
    seats: int = Field(default=5, ge=1)
    image: Optional[str] = None
    image_data: Optional[str] = None     # data:image/...;base64,...
    city: Optional[str] = None
    brand: Optional[str] = None
    description: Optional[str] = None
    available: bool = True
    host_id: Optional[int] = None        # admin create only


class CarUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1)
    price_per_day: Optional[int] = Field(default=None, ge=0)
    type: Optional[str] = None
    fuel: Optional[str] = None
    transmission: Optional[str] = None
    rating: Optional[float] = None
    seats: Optional[int] = Field(default=None, ge=1)
    image: Optional[str] = None
    image_data: Optional[str] = None
    city: Optional[str] = None
    brand: Optional[str] = None
    description: Optional[str] = None
    available: Optional[bool] = None


class AvailabilityOut(CamelModel):
    id: Union[int, str]
    available_for_range: bool
