# app/models/user.py
"""
Users table — customers and hosts (admins live in their own table).
Email is stored lowercased; mobile is stored digits-only and unique when set.
Deletion is logical: `deleted` + `deleted_at`, rows are never removed.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Boolean
from app.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(200))
    mobile = Column(String(32), unique=True, index=True)   # NULLs never collide
    password_hash = Column(String(255))                    # NULL for OTP-only accounts
    role = Column(String(20), default="user", nullable=False)  # user | host
    is_active = Column(Boolean, default=True, nullable=False)
    deleted = Column(Boolean, default=False, nullable=False)
    deleted_at = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<User {self.id} email={self.email} role={self.role}>"
