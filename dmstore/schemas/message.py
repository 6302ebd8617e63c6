from datetime import datetime, timezone
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from dmstore.models.message import MessageDocument


def _as_utc(value: datetime) -> datetime:
    # clients built without tz_aware hand back naive UTC datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class MessageCreate(BaseModel):

    # every field optional here so missing ones come back as field-level errors
    model_config = ConfigDict(populate_by_name=True)

    sender_id: Optional[str] = Field(default=None, alias="senderId")
    receiver_id: Optional[str] = Field(default=None, alias="receiverId")
    text: Optional[str] = None
    sent_at: Optional[datetime] = Field(default=None, alias="sentAt")
    read: Optional[bool] = None


class MarkReadRequest(BaseModel):

    model_config = ConfigDict(populate_by_name=True)

    sender_id: Optional[str] = Field(default=None, alias="senderId")
    receiver_id: Optional[str] = Field(default=None, alias="receiverId")


class MessagePublic(BaseModel):

    model_config = ConfigDict(populate_by_name=True)

    id: str
    sender_id: str = Field(alias="senderId")
    receiver_id: str = Field(alias="receiverId")
    text: str
    sent_at: datetime = Field(alias="sentAt")
    read: bool = False

    @classmethod
    def from_document(cls, doc: MessageDocument) -> "MessagePublic":
        return cls(
            id=str(doc["_id"]),
            sender_id=str(doc["senderId"]),
            receiver_id=str(doc["receiverId"]),
            text=doc["text"],
            sent_at=_as_utc(doc["sentAt"]),
            read=bool(doc.get("read", False)),
        )


class MarkReadResponse(BaseModel):

    model_config = ConfigDict(populate_by_name=True)

    message: str = "Messages marked as read"
    updated_count: int = Field(alias="updatedCount")


class UnreadCountsResponse(BaseModel):

    model_config = ConfigDict(populate_by_name=True)

    unread_counts: Dict[str, int] = Field(alias="unreadCounts")
