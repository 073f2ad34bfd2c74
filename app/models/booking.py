# app/models/booking.py
"""
Bookings and their verification attachments.
Dates are opaque ISO date strings (YYYY-MM-DD); overlap is only evaluated at
availability-query time, never enforced on insert.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey
from app.database import Base

ATTACHMENT_KINDS = ("idFront", "idBack", "license")


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    car_id = Column(Integer, ForeignKey("cars.id"), nullable=False, index=True)
    pickup_date = Column(String(32))
    return_date = Column(String(32))
    pickup_location = Column(String(255))
    return_location = Column(String(255))
    verification_json = Column(Text)          # serialized identity/license payload
    total_cost = Column(Integer)
    days = Column(Integer)
    status = Column(String(20), default="confirmed")   # confirmed | cancelled
    payment_id = Column(String(100))
    payment_method = Column(String(50))
    payment_status = Column(String(50))
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Booking {self.id} car={self.car_id} {self.pickup_date}..{self.return_date} status={self.status}>"


class Attachment(Base):
    __tablename__ = "attachments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    kind = Column(String(20), nullable=False)   # idFront | idBack | license
    path = Column(String(500), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Attachment {self.id} booking={self.booking_id} kind={self.kind}>"
