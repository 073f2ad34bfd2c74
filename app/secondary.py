# app/secondary.py
"""
Secondary store accessor — optional MongoDB mirror reached through the async
pymongo client.

The store is never authoritative. Every accessor returns None instead of
raising when MONGODB_URI is unset or the server cannot be reached within
MONGODB_TIMEOUT_MS. A failed connect is remembered for MONGODB_RETRY_SECONDS
so an outage does not add a connect timeout to every request.

One instance is created on startup (app.state.secondary) and closed on shutdown.
"""

import asyncio
import time
from typing import Optional

from pymongo import AsyncMongoClient

from app.config import settings
from app.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_DB_NAME = "carhire"


class SecondaryStore:
    def __init__(self, uri: Optional[str], db_name: Optional[str] = None,
                 timeout_ms: int = 3000, retry_seconds: int = 30,
                 client_factory=AsyncMongoClient):
        self.uri = (uri or "").strip() or None
        self.db_name = db_name
        self.timeout_ms = timeout_ms
        self.retry_seconds = retry_seconds
        self.last_error: Optional[str] = None
        self._client_factory = client_factory
        self._client = None
        self._db = None
        self._failed_at: Optional[float] = None
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls) -> "SecondaryStore":
        return cls(
            settings.MONGODB_URI,
            db_name=settings.MONGODB_DB,
            timeout_ms=settings.MONGODB_TIMEOUT_MS,
            retry_seconds=settings.MONGODB_RETRY_SECONDS,
        )

    @property
    def configured(self) -> bool:
        return self.uri is not None

    async def get_database(self):
        """Connected database handle, or None when unconfigured/unreachable."""
        if not self.configured:
            return None
        if self._db is not None:
            return self._db
        if self._failed_at is not None and time.monotonic() - self._failed_at < self.retry_seconds:
            return None

        async with self._lock:
            if self._db is not None:
                return self._db
            client = None
            try:
                client = self._client_factory(
                    self.uri,
                    serverSelectionTimeoutMS=self.timeout_ms,
                    connectTimeoutMS=self.timeout_ms,
                )
                await client.admin.command("ping")
                if self.db_name:
                    db = client.get_database(self.db_name)
                else:
                    db = client.get_default_database(default=DEFAULT_DB_NAME)
            except Exception as e:
                self.last_error = str(e) or e.__class__.__name__
                self._failed_at = time.monotonic()
                logger.warning(f"[MONGO] Connect failed, mirror disabled for {self.retry_seconds}s: {self.last_error}")
                if client is not None:
                    await self._close_client(client)
                return None

            self._client, self._db = client, db
            self._failed_at = None
            self.last_error = None
            logger.info(f"[MONGO] Connected: db={db.name}")
            return db

    async def ping(self) -> str:
        """Health check: ok | disabled | unreachable | error: ..."""
        if not self.configured:
            return "disabled"
        db = await self.get_database()
        if db is None:
            return "unreachable"
        try:
            await db.command("ping")
            return "ok"
        except Exception as e:
            return f"error: {e}"

    async def close(self):
        if self._client is not None:
            await self._close_client(self._client)
            logger.info("[MONGO] Connection closed")
        self._client = None
        self._db = None

    @staticmethod
    async def _close_client(client):
        try:
            result = client.close()
            if asyncio.iscoroutine(result):
                await result
        except Exception as e:
            logger.debug(f"[MONGO] Close failed: {e}")
