import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from pymongo.errors import ServerSelectionTimeoutError

from dmstore.repositories.message_repository import MessageRepository
from dmstore.utils.errors import StorageError


T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_append_assigns_id_and_defaults(repo, alice, bob):
    before = datetime.now(timezone.utc) - timedelta(seconds=1)
    saved = await repo.append(alice, bob, "hi")

    assert saved["_id"] is not None
    assert saved["senderId"] == alice
    assert saved["receiverId"] == bob
    assert saved["read"] is False
    assert saved["sentAt"] >= before
    assert saved["sentAt"].microsecond % 1000 == 0


@pytest.mark.asyncio
async def test_append_keeps_caller_overrides(repo, alice, bob):
    future = T0 + timedelta(days=365)
    saved = await repo.append(alice, bob, "from the future", sent_at=future, read=True)
    assert saved["sentAt"] == future
    assert saved["read"] is True


@pytest.mark.asyncio
async def test_ids_are_unique(repo, alice, bob):
    ids = {(await repo.append(alice, bob, f"m{i}"))["_id"] for i in range(5)}
    assert len(ids) == 5


@pytest.mark.asyncio
async def test_list_all_returns_insertion_order(repo, alice, bob, carol):
    await repo.append(alice, bob, "one", sent_at=T0 + timedelta(minutes=5))
    await repo.append(carol, alice, "two", sent_at=T0)
    await repo.append(bob, alice, "three")

    texts = [m["text"] for m in await repo.list_all()]
    assert texts == ["one", "two", "three"]


@pytest.mark.asyncio
async def test_conversation_is_ordered_and_direction_agnostic(repo, alice, bob, carol):
    await repo.append(bob, alice, "second", sent_at=T0 + timedelta(minutes=1))
    await repo.append(alice, bob, "first", sent_at=T0)
    await repo.append(alice, carol, "elsewhere", sent_at=T0)
    await repo.append(alice, bob, "third", sent_at=T0 + timedelta(minutes=2))

    forward = await repo.conversation_between(alice, bob)
    backward = await repo.conversation_between(bob, alice)

    assert [m["text"] for m in forward] == ["first", "second", "third"]
    assert [m["_id"] for m in forward] == [m["_id"] for m in backward]


@pytest.mark.asyncio
async def test_conversation_ties_fall_back_to_insertion_order(repo, alice, bob):
    for text in ("a", "b", "c"):
        await repo.append(alice, bob, text, sent_at=T0)

    assert [m["text"] for m in await repo.conversation_between(bob, alice)] == ["a", "b", "c"]


@pytest.mark.asyncio
async def test_self_conversation(repo, alice):
    await repo.append(alice, alice, "note to self")
    assert len(await repo.conversation_between(alice, alice)) == 1


@pytest.mark.asyncio
async def test_mark_read_is_directional(repo, alice, bob):
    await repo.append(alice, bob, "hi")
    await repo.append(alice, bob, "are you there")
    await repo.append(bob, alice, "hey")

    assert await repo.mark_read(alice, bob) == 2

    by_sender = {}
    for m in await repo.conversation_between(alice, bob):
        by_sender.setdefault(m["senderId"], []).append(m["read"])
    assert by_sender[alice] == [True, True]
    assert by_sender[bob] == [False]


@pytest.mark.asyncio
async def test_mark_read_is_idempotent(repo, alice, bob):
    await repo.append(alice, bob, "hi")
    assert await repo.mark_read(alice, bob) == 1
    assert await repo.mark_read(alice, bob) == 0


@pytest.mark.asyncio
async def test_mark_read_never_reverts(repo, alice, bob):
    await repo.append(alice, bob, "already read", read=True)
    await repo.append(alice, bob, "new")

    assert await repo.mark_read(alice, bob) == 1
    assert all(m["read"] for m in await repo.list_all())


@pytest.mark.asyncio
async def test_concurrent_mark_read_counts_each_message_once(repo, alice, bob):
    for i in range(10):
        await repo.append(alice, bob, f"m{i}")

    counts = await asyncio.gather(*(repo.mark_read(alice, bob) for _ in range(4)))
    assert sum(counts) == 10


@pytest.mark.asyncio
async def test_ensure_indexes(repo, db):
    await repo.ensure_indexes()
    info = await db["messages"].index_information()
    assert len(info) >= 4


class _FailingCollection:

    async def update_many(self, *args, **kwargs):
        raise ServerSelectionTimeoutError("no servers available")

    async def insert_one(self, *args, **kwargs):
        await asyncio.sleep(5)

    def aggregate(self, pipeline):
        return _FailingCursor()


class _FailingCursor:

    async def to_list(self, length=None):
        raise ServerSelectionTimeoutError("no servers available")


@pytest.mark.asyncio
async def test_driver_errors_become_storage_errors(alice, bob):
    repo = MessageRepository({"messages": _FailingCollection()}, timeout=1.0)
    with pytest.raises(StorageError) as exc_info:
        await repo.mark_read(alice, bob)
    assert "no servers available" in exc_info.value.detail


@pytest.mark.asyncio
async def test_deadline_expiry_becomes_storage_error(alice, bob):
    repo = MessageRepository({"messages": _FailingCollection()}, timeout=0.05)
    with pytest.raises(StorageError) as exc_info:
        await repo.append(alice, bob, "slow")
    assert exc_info.value.message == "Saving message failed"
    assert "timed out" in exc_info.value.detail


@pytest.mark.asyncio
async def test_aggregation_errors_become_storage_errors():
    repo = MessageRepository({"messages": _FailingCollection()}, timeout=1.0)
    with pytest.raises(StorageError) as exc_info:
        await repo.aggregate([{"$match": {"read": False}}])
    assert exc_info.value.message == "Aggregating messages failed"
    assert "no servers available" in exc_info.value.detail


@pytest.mark.asyncio
async def test_append_converts_sent_at_to_utc(repo, alice, bob):
    plus_two = timezone(timedelta(hours=2))
    saved = await repo.append(alice, bob, "hi", sent_at=datetime(2024, 1, 1, 12, 0, tzinfo=plus_two))
    assert saved["sentAt"] == datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)
    assert saved["sentAt"].utcoffset() == timedelta(0)
