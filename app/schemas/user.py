# app/schemas/user.py
from datetime import datetime
from typing import Optional, Union, Literal, List
from pydantic import Field

from app.schemas.base import CamelModel


class UserOut(CamelModel):
    id: Union[int, str]
    email: str
    full_name: Optional[str] = None
    mobile: Optional[str] = None
    role: str = "user"
    is_active: bool = True
    created_at: Optional[datetime] = None


class UserSummaryOut(UserOut):
    booking_count: int = 0
    total_spent: int = 0


class UserUpdate(CamelModel):
    full_name: Optional[str] = None
    mobile: Optional[str] = None
    role: Optional[Literal["user", "host"]] = None
    is_active: Optional[bool] = None


class UserAggregates(CamelModel):
    booking_count: int
    total_spent: int
    message_count: int


class UserDetailOut(CamelModel):
    user: UserOut
    aggregates: UserAggregates
    bookings: List[dict] = Field(default_factory=list)
    messages: List[dict] = Field(default_factory=list)
