# tests/conftest.py
"""
Shared fixtures. The environment is pinned before the app is imported:
in-memory SQLite primary, no MongoDB, no SendGrid, temp upload dir.
"""

import sys
import os
import tempfile
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["MONGODB_URI"] = ""
os.environ["SENDGRID_API_KEY"] = ""
os.environ["ENVIRONMENT"] = "development"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="carhire-uploads-")

import pytest
from unittest.mock import AsyncMock, MagicMock
from fastapi.testclient import TestClient

from app.database import Base, SessionLocal, create_tables, engine


@pytest.fixture(autouse=True)
def fresh_tables():
    create_tables()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def client():
    from app.main import app
    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin_headers(client):
    from app.config import settings
    resp = client.post("/api/admin/login", json={
        "email": settings.DEFAULT_ADMIN_EMAIL, "password": settings.DEFAULT_ADMIN_PASSWORD,
    })
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.json()['token']}"}


def bearer(user_id: int, role: str = "user") -> dict:
    from app.security import create_access_token
    return {"Authorization": f"Bearer {create_access_token(user_id, role)}"}


# ── Secondary store doubles ──────────────────────────────────────────────────
def make_collection(docs=None, find_one=None):
    """Mock async collection: find() returns every doc, find_one() a fixed doc."""
    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.to_list = AsyncMock(return_value=list(docs or []))
    coll = MagicMock()
    coll.find.return_value = cursor
    coll.find_one = AsyncMock(return_value=find_one)
    coll.update_one = AsyncMock()
    coll.delete_one = AsyncMock()
    coll.delete_many = AsyncMock()
    return coll


def make_mdb(collections: dict = None):
    collections = dict(collections or {})
    mdb = MagicMock()
    mdb.name = "carhire_test"

    def _get(name):
        if name not in collections:
            collections[name] = make_collection()
        return collections[name]

    mdb.__getitem__.side_effect = _get
    mdb.command = AsyncMock(return_value={"ok": 1})
    return mdb


class FakeSecondary:
    """Stands in for SecondaryStore: a fixed database handle (or None)."""

    def __init__(self, mdb=None):
        self.mdb = mdb
        self.configured = True
        self.closed = False

    async def get_database(self):
        return self.mdb

    async def ping(self):
        return "ok" if self.mdb is not None else "unreachable"

    async def close(self):
        self.closed = True


class BrokenCollection:
    """Every operation fails as if the server went away mid-request."""

    def __getattr__(self, name):
        def _fail(*args, **kwargs):
            raise ConnectionError("mongo connection reset")
        return _fail


def broken_mdb():
    mdb = MagicMock()
    mdb.__getitem__.side_effect = lambda name: BrokenCollection()
    return mdb
