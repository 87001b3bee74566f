# src/lifehub/services/message_store.py
"""Durable, ordered message log."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import desc, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lifehub.core.errors import PersistenceError
from lifehub.db.time import utcnow
from lifehub.models import Conversation, Message, MessageKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MediaReference:
    """Pointer to an attachment held by media storage."""

    url: str
    mime_type: str | None = None
    file_name: str | None = None
    size: int | None = None


class MessageStore:
    """Persist and page through encrypted messages.

    Rows are ordered by their store-assigned id, never by client clocks.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def append(
        self,
        conversation: Conversation,
        sender_id: int,
        receiver_id: int,
        kind: MessageKind,
        ciphertext: str,
        media: MediaReference | None = None,
    ) -> Message:
        """Insert a message and bump its conversation in the same transaction.

        Raises:
            PersistenceError: If the write is rejected.
        """
        now = utcnow()
        message = Message(
            conversation_id=conversation.id,
            sender_id=sender_id,
            receiver_id=receiver_id,
            message_type=kind.value,
            encrypted_content=ciphertext,
            media_url=media.url if media else None,
            media_type=media.mime_type if media else None,
            file_name=media.file_name if media else None,
            file_size=media.size if media else None,
            created_at=now,
        )
        conversation.updated_at = now
        conversation.last_message_at = now
        self.db.add(message)
        try:
            self.db.commit()
        except SQLAlchemyError as err:
            self.db.rollback()
            logger.error(
                "Failed to store message in conversation %s: %s",
                conversation.id,
                err,
                exc_info=True,
            )
            raise PersistenceError() from err

        self.db.refresh(message)
        return message

    def list_by_conversation(
        self,
        conversation_id: int,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Message]:
        """Return a page of messages, newest first."""
        return (
            self.db.query(Message)
            .filter(Message.conversation_id == conversation_id)
            .order_by(desc(Message.id))
            .limit(limit)
            .offset(offset)
            .all()
        )

    def list_for_display(
        self,
        conversation_id: int,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Message]:
        """Return the same page as list_by_conversation, oldest first."""
        page = self.list_by_conversation(conversation_id, limit=limit, offset=offset)
        page.reverse()
        return page

    def mark_read(self, conversation_id: int, receiver_id: int) -> int:
        """Stamp every unread message addressed to ``receiver_id``.

        Returns:
            Number of rows transitioned by this call.
        """
        try:
            count = (
                self.db.query(Message)
                .filter(
                    Message.conversation_id == conversation_id,
                    Message.receiver_id == receiver_id,
                    Message.read_at.is_(None),
                )
                .update({Message.read_at: utcnow()}, synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as err:
            self.db.rollback()
            logger.error(
                "Failed to mark conversation %s read for %s: %s",
                conversation_id,
                receiver_id,
                err,
                exc_info=True,
            )
            raise PersistenceError("Failed to mark messages as read") from err
        return int(count or 0)

    def count_unread(self, conversation_id: int, receiver_id: int) -> int:
        """Return how many messages addressed to ``receiver_id`` are still unread."""
        count = (
            self.db.query(func.count(Message.id))
            .filter(
                Message.conversation_id == conversation_id,
                Message.receiver_id == receiver_id,
                Message.read_at.is_(None),
            )
            .scalar()
        )
        return int(count or 0)
