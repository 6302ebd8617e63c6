import logging
from datetime import datetime
from typing import Any, List, Optional

from dmstore.models.message import MessageDocument
from dmstore.repositories.message_repository import MessageRepository
from dmstore.utils.validation import parse_new_message, parse_participants


logger = logging.getLogger(__name__)


class MessageService:

    def __init__(self, message_repo: MessageRepository) -> None:
        self._message_repo = message_repo

    async def list_messages(self) -> List[MessageDocument]:
        return await self._message_repo.list_all()

    async def create_message(
        self,
        sender_id: Any,
        receiver_id: Any,
        text: Any,
        sent_at: Optional[datetime] = None,
        read: Optional[bool] = None,
    ) -> MessageDocument:
        new = parse_new_message(sender_id, receiver_id, text, sent_at, read)
        saved = await self._message_repo.append(new.sender_id, new.receiver_id, new.text, new.sent_at, new.read)
        logger.info("Saved message %s from %s to %s", saved["_id"], new.sender_id, new.receiver_id)
        return saved

    async def get_conversation(self, user_a: Any, user_b: Any) -> List[MessageDocument]:
        a, b = parse_participants(user_a, user_b)
        return await self._message_repo.conversation_between(a, b)

    async def mark_read(self, sender_id: Any, receiver_id: Any) -> int:
        """Flip every unread message sent by ``sender_id`` to ``receiver_id``.

        Only that direction is touched; the recipient acknowledging a sender
        says nothing about the messages going the other way.
        """
        logger.debug("Mark read requested: sender=%r receiver=%r", sender_id, receiver_id)
        sender, receiver = parse_participants(sender_id, receiver_id)
        updated = await self._message_repo.mark_read(sender, receiver)
        logger.info("Marked %d message(s) from %s to %s as read", updated, sender, receiver)
        return updated
