# src/lifehub/models/__init__.py
"""SQLAlchemy models for the LifeHub messaging service."""

from .conversation import Conversation, pair_key_for
from .message import Message, MessageKind
from .user import User

__all__ = [
    "Conversation", "pair_key_for",
    "Message", "MessageKind",
    "User",
]
