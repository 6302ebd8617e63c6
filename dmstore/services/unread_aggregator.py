import logging
from typing import Any, Dict

from dmstore.repositories.message_repository import MessageRepository
from dmstore.utils.validation import parse_receiver


logger = logging.getLogger(__name__)


class UnreadAggregator:
    """Per-sender unread counts for one recipient, computed on every call.

    Nothing is cached or materialized: the counts are a ``$match`` +
    ``$group`` over the same collection the store writes, so they always
    reflect the current read state.
    """

    def __init__(self, message_repo: MessageRepository) -> None:
        self._message_repo = message_repo

    async def counts_for(self, receiver_id: Any) -> Dict[str, int]:
        receiver_oid = parse_receiver(receiver_id)
        logger.debug("Computing unread counts for %s", receiver_oid)
        rows = await self._message_repo.aggregate([
            {"$match": {"receiverId": receiver_oid, "read": False}},
            {"$group": {"_id": "$senderId", "count": {"$sum": 1}}},
        ])
        counts = {str(row["_id"]): int(row["count"]) for row in rows if row.get("count")}
        logger.info("Unread counts for %s: %s", receiver_oid, counts)
        return counts
