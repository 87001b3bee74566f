# src/lifehub/schemas/conversation.py
"""Conversation-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class ConversationOut(BaseModel):
    """Conversation metadata returned by the API."""

    id: int
    user1_id: int
    user2_id: int
    created_at: datetime
    updated_at: datetime
    last_message_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class ConversationSummaryOut(ConversationOut):
    """Conversation list entry annotated for the caller."""

    other_user_id: int
    other_username: str | None = None
    other_user_name: str | None = None
    other_user_image: str | None = None
    unread_count: int = 0
