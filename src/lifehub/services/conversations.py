# src/lifehub/services/conversations.py
"""Conversation directory: lookup, lazy creation and listing."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import case, desc, func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from lifehub.core.errors import (
    InvalidRequestError,
    NotFoundOrForbiddenError,
    PersistenceError,
)
from lifehub.models import Conversation, Message, User, pair_key_for

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConversationRef:
    """Detached view of a conversation's identity and participants."""

    id: int
    user1_id: int
    user2_id: int

    @classmethod
    def of(cls, conversation: Conversation) -> "ConversationRef":
        """Capture the identity of a loaded conversation."""
        return cls(
            id=conversation.id,
            user1_id=conversation.user1_id,
            user2_id=conversation.user2_id,
        )

    @property
    def participant_ids(self) -> tuple[int, int]:
        """Return both participant identifiers."""
        return (self.user1_id, self.user2_id)

    def other(self, user_id: int) -> int:
        """Return the participant that is not ``user_id``."""
        return self.user2_id if self.user1_id == user_id else self.user1_id


@dataclass(frozen=True)
class ConversationSummary:
    """Conversation annotated for the caller's conversation list."""

    conversation: Conversation
    other_user_id: int
    other_username: str | None
    other_user_name: str | None
    other_user_image: str | None
    unread_count: int

    @property
    def updated_at(self) -> datetime:
        return self.conversation.updated_at


class ConversationDirectory:
    """Resolve the unique conversation between two users."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def _find_pair(self, user_a: int, user_b: int) -> Conversation | None:
        return (
            self.db.query(Conversation)
            .filter(Conversation.pair_key == pair_key_for(user_a, user_b))
            .first()
        )

    def get_or_create(self, current_user_id: int, other_user_id: int) -> tuple[Conversation, bool]:
        """Return the conversation between two users, creating it on first use.

        Returns:
            Tuple of (conversation, created).

        Raises:
            InvalidRequestError: If both identifiers are the same user.
            NotFoundOrForbiddenError: If the other user does not exist.
        """
        if int(current_user_id) == int(other_user_id):
            raise InvalidRequestError("Cannot create conversation with yourself")

        existing = self._find_pair(current_user_id, other_user_id)
        if existing is not None:
            return existing, False

        if self.db.get(User, other_user_id) is None:
            raise NotFoundOrForbiddenError("User not found")

        conversation = Conversation(
            user1_id=current_user_id,
            user2_id=other_user_id,
            pair_key=pair_key_for(current_user_id, other_user_id),
        )
        self.db.add(conversation)
        try:
            self.db.commit()
        except IntegrityError:
            # The other participant created the pair between our lookup and insert.
            self.db.rollback()
            existing = self._find_pair(current_user_id, other_user_id)
            if existing is None:
                logger.error(
                    "Conversation insert for %s/%s conflicted but no row was found",
                    current_user_id,
                    other_user_id,
                )
                raise PersistenceError("Failed to create conversation")
            logger.info(
                "Conversation %s between %s and %s was created concurrently",
                existing.id,
                current_user_id,
                other_user_id,
            )
            return existing, False
        except SQLAlchemyError as err:
            self.db.rollback()
            logger.error("Failed to create conversation: %s", err, exc_info=True)
            raise PersistenceError("Failed to create conversation") from err

        self.db.refresh(conversation)
        logger.info(
            "Created conversation %s between %s and %s",
            conversation.id,
            current_user_id,
            other_user_id,
        )
        return conversation, True

    def get_for_participant(self, conversation_id: int, user_id: int) -> Conversation:
        """Return a conversation the user takes part in.

        Raises:
            NotFoundOrForbiddenError: If it does not exist or the user is not a participant.
        """
        conversation = (
            self.db.query(Conversation)
            .filter(
                Conversation.id == conversation_id,
                or_(Conversation.user1_id == user_id, Conversation.user2_id == user_id),
            )
            .first()
        )
        if conversation is None:
            raise NotFoundOrForbiddenError()
        return conversation

    def list_for_principal(self, user_id: int) -> list[ConversationSummary]:
        """Return the user's conversations, most recently active first."""
        other_id = case(
            (Conversation.user1_id == user_id, Conversation.user2_id),
            else_=Conversation.user1_id,
        )
        unread = (
            select(func.count(Message.id))
            .where(
                Message.conversation_id == Conversation.id,
                Message.receiver_id == user_id,
                Message.read_at.is_(None),
            )
            .correlate(Conversation)
            .scalar_subquery()
        )
        rows = (
            self.db.query(Conversation, User, other_id.label("other_id"), unread.label("unread"))
            .outerjoin(User, User.id == other_id)
            .filter(or_(Conversation.user1_id == user_id, Conversation.user2_id == user_id))
            .order_by(desc(Conversation.updated_at), desc(Conversation.id))
            .all()
        )
        return [
            ConversationSummary(
                conversation=conversation,
                other_user_id=int(counterpart_id),
                other_username=other.username if other else None,
                other_user_name=other.display_name if other else None,
                other_user_image=other.profile_image if other else None,
                unread_count=int(unread_count or 0),
            )
            for conversation, other, counterpart_id, unread_count in rows
        ]
