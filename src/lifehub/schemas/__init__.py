# src/lifehub/schemas/__init__.py
"""Pydantic schemas for the LifeHub messaging API."""

from .conversation import ConversationOut, ConversationSummaryOut
from .events import (
    ConversationTarget,
    MarkReadPayload,
    SendMessagePayload,
    SocketFrame,
    TypingPayload,
)
from .message import (
    MarkReadResponse,
    MessageBase,
    MessageOut,
    build_message_out,
)
from .user import UserPublic, UserSearchResult

__all__ = [
    "ConversationOut",
    "ConversationSummaryOut",
    "ConversationTarget",
    "MarkReadPayload",
    "SendMessagePayload",
    "SocketFrame",
    "TypingPayload",
    "MarkReadResponse",
    "MessageBase",
    "MessageOut",
    "build_message_out",
    "UserPublic",
    "UserSearchResult",
]
