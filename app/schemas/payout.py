# app/schemas/payout.py
from datetime import datetime
from typing import Optional
from pydantic import Field

from app.schemas.base import CamelModel


class PayoutCreate(CamelModel):
    booking_id: int = Field(ge=1)
    amount: int = Field(ge=1)
    note: Optional[str] = None


class PayoutHostOut(CamelModel):
    id: int
    email: Optional[str] = None
    full_name: Optional[str] = None


class PayoutOut(CamelModel):
    id: int
    booking_id: int
    host_id: int
    amount: int
    status: str
    note: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    host: Optional[PayoutHostOut] = None
