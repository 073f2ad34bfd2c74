# app/schemas/auth.py
from datetime import datetime
from typing import Optional, Literal
from pydantic import EmailStr, Field

from app.schemas.base import CamelModel
from app.schemas.user import UserOut


class OtpRequest(CamelModel):
    email: EmailStr
    purpose: Literal["login", "signup", "reset"]


class LoginCodeRequest(CamelModel):
    email: EmailStr


class OtpRequestOut(CamelModel):
    success: bool = True
    message: str = "OTP sent successfully"
    expires_at: datetime
    debug: Optional[dict] = None


class OtpVerify(CamelModel):
    email: EmailStr
    code: str = Field(pattern=r"^\d{4,8}$")
    purpose: Optional[Literal["login", "signup", "reset"]] = None
    full_name: Optional[str] = None
    mobile: Optional[str] = None


class AuthOut(CamelModel):
    user: UserOut
    token: str


class AdminLogin(CamelModel):
    email: str = Field(min_length=3)
    password: str = Field(min_length=1)


class AdminOut(CamelModel):
    id: int
    email: str
    created_at: Optional[datetime] = None


class AdminAuthOut(CamelModel):
    admin: AdminOut
    token: str
