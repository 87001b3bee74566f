# src/lifehub/models/conversation.py
"""Model describing a one-to-one conversation between two users."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from lifehub.db.session import Base
from lifehub.db.time import utcnow


def pair_key_for(user_a: int, user_b: int) -> str:
    """Return the order-independent key identifying a participant pair."""
    low, high = sorted((int(user_a), int(user_b)))
    return f"{low}:{high}"


class Conversation(Base):
    """Unique direct channel between two users.

    ``user1_id`` is whoever opened the conversation. Uniqueness of the
    unordered pair is enforced through ``pair_key``.
    """

    __tablename__ = "conversations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user1_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    user2_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    pair_key: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, index=True
    )
    last_message_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
