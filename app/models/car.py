# app/models/car.py
"""
Cars table — rental listings.
host_id is NULL for platform-owned cars. Soft-deleted via `deleted`.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Float, Text, Boolean, ForeignKey
from app.database import Base


class Car(Base):
    __tablename__ = "cars"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    type = Column(String(50))
    fuel = Column(String(50))
    transmission = Column(String(50))
    price_per_day = Column(Integer, nullable=False)
    rating = Column(Float, default=0)
    seats = Column(Integer)
    image = Column(String(500))
    city = Column(String(100), index=True)
    brand = Column(String(100))
    description = Column(Text)
    available = Column(Boolean, default=True, nullable=False)
    host_id = Column(Integer, ForeignKey("users.id"), index=True)
    deleted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime)

    def __repr__(self):
        return f"<Car {self.id} name={self.name} host={self.host_id} available={self.available}>"
