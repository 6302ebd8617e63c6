import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Dict, List, Optional, TypeVar

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING
from pymongo.errors import PyMongoError

from dmstore.models.message import MessageDocument
from dmstore.utils.errors import StorageError


logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT = 5.0


def _bson_time(value: Optional[datetime] = None) -> datetime:
    # BSON dates carry milliseconds in UTC; naive values are taken as UTC
    value = value or datetime.now(timezone.utc)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.replace(microsecond=value.microsecond // 1000 * 1000)


class MessageRepository:

    def __init__(self, db: AsyncIOMotorDatabase, timeout: float = DEFAULT_TIMEOUT) -> None:
        self._db = db
        self._timeout = timeout

    @property
    def collection(self):
        return self._db["messages"]

    async def _run(self, operation: str, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            logger.error("%s timed out after %.1fs", operation, self._timeout)
            raise StorageError(f"{operation} failed", f"timed out after {self._timeout}s") from exc
        except PyMongoError as exc:
            logger.exception("%s failed", operation)
            raise StorageError(f"{operation} failed", str(exc)) from exc

    async def ensure_indexes(self) -> None:
        await self._run("Creating message indexes", self._create_indexes())

    async def _create_indexes(self) -> None:
        await self.collection.create_index([("senderId", ASCENDING), ("receiverId", ASCENDING), ("sentAt", ASCENDING)])
        await self.collection.create_index([("senderId", ASCENDING), ("receiverId", ASCENDING), ("read", ASCENDING)])
        await self.collection.create_index([("receiverId", ASCENDING), ("read", ASCENDING), ("senderId", ASCENDING)])

    async def list_all(self) -> List[MessageDocument]:
        # natural order: insertion order on a plain collection, not a causal guarantee
        cursor = self.collection.find({})
        return await self._run("Fetching messages", cursor.to_list(length=None))

    async def append(
        self,
        sender_id: ObjectId,
        receiver_id: ObjectId,
        text: str,
        sent_at: Optional[datetime] = None,
        read: Optional[bool] = None,
    ) -> MessageDocument:
        doc: MessageDocument = {
            "_id": ObjectId(),
            "senderId": sender_id,
            "receiverId": receiver_id,
            "text": text,
            "sentAt": _bson_time(sent_at),
            "read": bool(read),
        }
        await self._run("Saving message", self.collection.insert_one(doc))
        return doc

    async def conversation_between(self, user_a: ObjectId, user_b: ObjectId) -> List[MessageDocument]:
        query: Dict[str, Any] = {
            "$or": [
                {"senderId": user_a, "receiverId": user_b},
                {"senderId": user_b, "receiverId": user_a},
            ]
        }
        # equal sentAt falls back to _id, which follows insertion order
        cursor = self.collection.find(query).sort([("sentAt", ASCENDING), ("_id", ASCENDING)])
        return await self._run("Fetching conversation", cursor.to_list(length=None))

    async def mark_read(self, sender_id: ObjectId, receiver_id: ObjectId) -> int:
        result = await self._run(
            "Marking messages as read",
            self.collection.update_many(
                {"senderId": sender_id, "receiverId": receiver_id, "read": False},
                {"$set": {"read": True}},
            ),
        )
        logger.debug(
            "mark_read matched=%s modified=%s", result.matched_count, result.modified_count
        )
        return result.modified_count or 0

    async def aggregate(self, pipeline: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        cursor = self.collection.aggregate(pipeline)
        return await self._run("Aggregating messages", cursor.to_list(length=None))
