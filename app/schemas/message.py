# app/schemas/message.py
from datetime import datetime
from typing import Optional
from pydantic import EmailStr, Field

from app.schemas.base import CamelModel


class MessageCreate(CamelModel):
    name: str = Field(min_length=1)
    email: EmailStr
    message: str = Field(min_length=3)


class MessageReply(CamelModel):
    reply: str = Field(min_length=1)


class MessageOut(CamelModel):
    id: int
    name: Optional[str] = None
    email: Optional[str] = None
    message: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None
