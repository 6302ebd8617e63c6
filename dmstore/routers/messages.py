from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from dmstore.database.connection import MongoConnection, mongo_connection_dependency
from dmstore.repositories.message_repository import MessageRepository
from dmstore.schemas.message import (
    MarkReadRequest,
    MarkReadResponse,
    MessageCreate,
    MessagePublic,
    UnreadCountsResponse,
)
from dmstore.services.message_service import MessageService
from dmstore.services.unread_aggregator import UnreadAggregator


router = APIRouter(prefix="/messages", tags=["messages"])


def get_message_repository(mongo: MongoConnection = Depends(mongo_connection_dependency)) -> MessageRepository:
    return MessageRepository(mongo.db, timeout=mongo.timeout)


def get_message_service(repo: MessageRepository = Depends(get_message_repository)) -> MessageService:
    return MessageService(repo)


def get_unread_aggregator(repo: MessageRepository = Depends(get_message_repository)) -> UnreadAggregator:
    return UnreadAggregator(repo)


@router.get("/unread", response_model=UnreadCountsResponse, include_in_schema=False)
async def unread_counts_missing_id(aggregator: UnreadAggregator = Depends(get_unread_aggregator)):
    # no path id at all, reported like a malformed one
    return UnreadCountsResponse(unread_counts=await aggregator.counts_for(None))


@router.get("/unread/{receiver_id}", response_model=UnreadCountsResponse)
async def unread_counts(receiver_id: str, aggregator: UnreadAggregator = Depends(get_unread_aggregator)):
    counts = await aggregator.counts_for(receiver_id)
    return UnreadCountsResponse(unread_counts=counts)


@router.get("", response_model=List[MessagePublic])
async def list_messages(service: MessageService = Depends(get_message_service)):
    docs = await service.list_messages()
    return [MessagePublic.from_document(d) for d in docs]


@router.post("", response_model=MessagePublic, status_code=status.HTTP_201_CREATED)
async def create_message(payload: Optional[MessageCreate] = None, service: MessageService = Depends(get_message_service)):
    payload = payload or MessageCreate()
    doc = await service.create_message(
        payload.sender_id,
        payload.receiver_id,
        payload.text,
        sent_at=payload.sent_at,
        read=payload.read,
    )
    return MessagePublic.from_document(doc)


@router.get("/between-users", response_model=List[MessagePublic])
async def messages_between_users(
    sender_id: Optional[str] = Query(None, alias="senderId"),
    receiver_id: Optional[str] = Query(None, alias="receiverId"),
    service: MessageService = Depends(get_message_service),
):
    docs = await service.get_conversation(sender_id, receiver_id)
    return [MessagePublic.from_document(d) for d in docs]


@router.post("/mark-read", response_model=MarkReadResponse)
async def mark_read(payload: Optional[MarkReadRequest] = None, service: MessageService = Depends(get_message_service)):
    payload = payload or MarkReadRequest()
    updated = await service.mark_read(payload.sender_id, payload.receiver_id)
    return MarkReadResponse(updated_count=updated)
