from datetime import datetime
from typing import NamedTuple, Optional, TypedDict

from bson import ObjectId


class MessageDocument(TypedDict, total=False):
    _id: ObjectId
    senderId: ObjectId
    receiverId: ObjectId
    text: str
    sentAt: datetime
    # read state, only ever flips False -> True
    read: bool


class NewMessage(NamedTuple):
    sender_id: ObjectId
    receiver_id: ObjectId
    text: str
    sent_at: Optional[datetime] = None
    read: Optional[bool] = None
