import logging
import os
from typing import Any, Optional

from fastapi import Request
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from dmstore.utils.errors import StorageError


logger = logging.getLogger(__name__)

DEFAULT_MONGODB_URL = "mongodb://localhost:27017"
DEFAULT_MONGODB_DB = "dmstore"
DEFAULT_TIMEOUT_MS = 5000


class MongoConnection:
    """Explicit MongoDB handle, opened at startup and closed at shutdown."""

    def __init__(
        self,
        url: str = DEFAULT_MONGODB_URL,
        db_name: str = DEFAULT_MONGODB_DB,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        client: Any = None,
    ) -> None:
        self.url = url
        self.db_name = db_name
        self.timeout_ms = timeout_ms
        self._client = client
        # an injected client belongs to the caller and is left open
        self._owns_client = client is None
        self._db: Optional[AsyncIOMotorDatabase] = client[db_name] if client is not None else None

    @classmethod
    def from_env(cls) -> "MongoConnection":
        return cls(
            url=os.getenv("MONGODB_URL", DEFAULT_MONGODB_URL),
            db_name=os.getenv("MONGODB_DB", DEFAULT_MONGODB_DB),
            timeout_ms=int(os.getenv("MONGODB_TIMEOUT_MS", str(DEFAULT_TIMEOUT_MS))),
        )

    @property
    def timeout(self) -> float:
        return self.timeout_ms / 1000.0

    @property
    def is_open(self) -> bool:
        return self._db is not None

    async def connect(self) -> None:
        if self._client is None:
            self._client = AsyncIOMotorClient(
                self.url,
                tz_aware=True,
                serverSelectionTimeoutMS=self.timeout_ms,
            )
        self._db = self._client[self.db_name]
        logger.info("Connected to MongoDB database %r", self.db_name)

    async def close(self) -> None:
        if self._owns_client and self._client is not None:
            self._client.close()
            self._client = None
        self._db = None
        logger.info("Closed MongoDB connection")

    @property
    def db(self) -> AsyncIOMotorDatabase:
        if self._db is None:
            raise StorageError("Database connection is not open")
        return self._db


def mongo_connection_dependency(request: Request) -> MongoConnection:
    return request.app.state.mongo


def mongo_db_dependency(request: Request) -> AsyncIOMotorDatabase:
    return mongo_connection_dependency(request).db
