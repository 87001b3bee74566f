# src/lifehub/models/message.py
"""Models describing direct messages between users."""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from lifehub.db.session import Base
from lifehub.db.time import utcnow


class MessageKind(str, enum.Enum):
    """Payload variant carried by a message."""

    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    FILE = "file"

    @property
    def is_media(self) -> bool:
        return self is not MessageKind.TEXT

    @classmethod
    def from_mime_type(cls, mime_type: str | None) -> "MessageKind":
        """Classify an attachment by its MIME type."""
        mime = (mime_type or "").lower()
        if mime.startswith("image/"):
            return cls.IMAGE
        if mime.startswith("video/"):
            return cls.VIDEO
        if mime.startswith("audio/"):
            return cls.AUDIO
        return cls.FILE


class Message(Base):
    """Encrypted message exchanged inside a conversation.

    Only ciphertext is stored. ``id`` is assigned by the store and is the
    ordering key within a conversation.
    """

    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    conversation_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("conversations.id"), nullable=False, index=True
    )
    sender_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    receiver_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False, index=True
    )
    message_type: Mapped[str] = mapped_column(
        String(16), nullable=False, default=MessageKind.TEXT.value
    )
    encrypted_content: Mapped[str] = mapped_column(Text, nullable=False)

    # Media reference, populated for non-text kinds only.
    media_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    media_type: Mapped[str | None] = mapped_column(String(255), nullable=True)
    file_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    file_size: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def kind(self) -> MessageKind:
        return MessageKind(self.message_type)
