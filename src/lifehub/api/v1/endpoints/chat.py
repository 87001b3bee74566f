# src/lifehub/api/v1/endpoints/chat.py
"""Direct messaging endpoints for the LifeHub API."""

from __future__ import annotations

import asyncio
from typing import Annotated

from fastapi import APIRouter, File, Form, Query, Response, UploadFile, status

from lifehub.core.errors import InvalidRequestError
from lifehub.core.settings import settings
from lifehub.schemas.conversation import ConversationOut, ConversationSummaryOut
from lifehub.schemas.message import MarkReadResponse, MessageBase, MessageOut
from lifehub.schemas.user import UserSearchResult
from lifehub.services.conversations import ConversationDirectory
from lifehub.services.delivery import MessageDraft
from lifehub.services.media_storage import StoredMedia
from lifehub.services.users import search_users

from ..dependencies import (
    CurrentUserDep,
    DeliveryDep,
    MediaStorageDep,
    PresenceDep,
    SessionDep,
)

router = APIRouter(prefix="/chat", tags=["chat"])


@router.get("/search", response_model=list[UserSearchResult])
def search_contacts(
    current_user: CurrentUserDep,
    db: SessionDep,
    query: str | None = Query(None),
) -> list[UserSearchResult]:
    """Search users by username or phone number."""
    users = search_users(db, query, exclude_user_id=current_user.id)
    return [UserSearchResult.model_validate(user) for user in users]


@router.get("/conversations", response_model=list[ConversationSummaryOut])
def list_conversations(
    current_user: CurrentUserDep,
    db: SessionDep,
) -> list[ConversationSummaryOut]:
    """Get all conversations of the current user, most recent first."""
    summaries = ConversationDirectory(db).list_for_principal(current_user.id)
    return [
        ConversationSummaryOut(
            **ConversationOut.model_validate(summary.conversation).model_dump(),
            other_user_id=summary.other_user_id,
            other_username=summary.other_username,
            other_user_name=summary.other_user_name,
            other_user_image=summary.other_user_image,
            unread_count=summary.unread_count,
        )
        for summary in summaries
    ]


@router.post("/conversations/{user_id}", response_model=ConversationOut)
def get_or_create_conversation(
    user_id: int,
    response: Response,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> ConversationOut:
    """Return the conversation with ``user_id``, creating it on first contact."""
    conversation, created = ConversationDirectory(db).get_or_create(current_user.id, user_id)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return ConversationOut.model_validate(conversation)


@router.get("/conversations/{conversation_id}/messages", response_model=list[MessageOut])
def get_messages(
    conversation_id: int,
    current_user: CurrentUserDep,
    delivery: DeliveryDep,
    limit: int = Query(settings.chat_message_page_default, ge=1, le=settings.chat_message_page_max),
    offset: int = Query(0, ge=0),
) -> list[MessageBase]:
    """Get a page of decrypted messages, oldest first."""
    return delivery.list_messages(current_user.id, conversation_id, limit=limit, offset=offset)


@router.post("/messages", status_code=status.HTTP_201_CREATED, response_model=MessageOut)
async def send_message(
    current_user: CurrentUserDep,
    delivery: DeliveryDep,
    presence: PresenceDep,
    media_storage: MediaStorageDep,
    conversation_id: Annotated[int | None, Form(alias="conversationId")] = None,
    content: Annotated[str | None, Form()] = None,
    message_type: Annotated[str | None, Form(alias="messageType")] = None,
    media: Annotated[UploadFile | None, File()] = None,
) -> MessageBase:
    """Send a text message or an attachment with optional caption."""
    if conversation_id is None:
        raise InvalidRequestError("Conversation ID is required")

    sender_id = current_user.id
    await asyncio.to_thread(delivery.authorize, sender_id, conversation_id)

    stored: StoredMedia | None = None
    if media is not None and media.filename:
        stored = await media_storage.save_upload(media)

    draft = MessageDraft(
        content=content,
        message_type=message_type,
        media=stored.reference if stored else None,
    )
    try:
        delivered = await asyncio.to_thread(delivery.send, sender_id, conversation_id, draft)
    except Exception:
        # The attachment is only kept once its message is stored.
        if stored is not None:
            media_storage.delete(stored)
        raise

    await presence.publish_message(delivered.conversation, delivered.message)
    return delivered.message


@router.put("/conversations/{conversation_id}/read", response_model=MarkReadResponse)
async def mark_as_read(
    conversation_id: int,
    current_user: CurrentUserDep,
    delivery: DeliveryDep,
    presence: PresenceDep,
) -> MarkReadResponse:
    """Mark every message addressed to the current user as read."""
    receipt = await asyncio.to_thread(delivery.mark_read, current_user.id, conversation_id)
    if receipt.count:
        await presence.publish_read(receipt.conversation, receipt.reader_id)
    return MarkReadResponse(count=receipt.count)
