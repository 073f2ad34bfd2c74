# app/database.py
"""
Primary store: connection, session management, and table creation.
Uses SQLAlchemy; PostgreSQL or SQLite depending on DATABASE_URL. All models are
auto-imported here so create_tables() creates every table in one call.
"""

import os

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from app.config import settings


def _engine_kwargs(url: str) -> dict:
    if not url.startswith("sqlite"):
        return {
            "pool_pre_ping": True,       # Auto-reconnect if DB connection drops
            "pool_size": 10,
            "max_overflow": 20,
        }
    kwargs = {"connect_args": {"check_same_thread": False}}
    if url in ("sqlite://", "sqlite:///:memory:"):
        # One shared connection, otherwise every session sees an empty database
        kwargs["poolclass"] = StaticPool
    else:
        db_path = url.split("///", 1)[-1]
        if os.path.dirname(db_path):
            os.makedirs(os.path.dirname(db_path), exist_ok=True)
    return kwargs


engine = create_engine(
    settings.DATABASE_URL,
    echo=False,                  # Set True to log all SQL queries (debug only)
    **_engine_kwargs(settings.DATABASE_URL),
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """FastAPI dependency — yields a DB session and closes it after request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables():
    """
    Creates all DB tables on startup. Safe to call multiple times.
    Import all models here so SQLAlchemy knows about them.
    """
    from app.models.user import User                       # noqa
    from app.models.admin import Admin                     # noqa
    from app.models.car import Car                         # noqa
    from app.models.booking import Booking, Attachment     # noqa
    from app.models.message import Message                 # noqa
    from app.models.payout_request import PayoutRequest   # noqa
    from app.models.otp_code import OtpCode                # noqa

    Base.metadata.create_all(bind=engine)
