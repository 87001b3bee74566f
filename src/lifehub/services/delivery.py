# src/lifehub/services/delivery.py
"""Store-and-encrypt pipeline shared by the HTTP and push channel entry points.

Every send runs authorize -> resolve receiver -> encrypt -> persist and
returns the decrypted, caller-facing message. Broadcasting the result is
left to the caller, which owns the event loop and the connection hub.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lifehub.core.errors import InvalidRequestError, PersistenceError
from lifehub.models import Message, MessageKind, User
from lifehub.schemas.message import MessageBase, build_message_out
from lifehub.services.conversations import ConversationDirectory, ConversationRef
from lifehub.services.message_codec import MessageCodec
from lifehub.services.message_store import MediaReference, MessageStore
from lifehub.services.users import get_users

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MessageDraft:
    """Message as submitted by a client, before classification and encryption."""

    content: str | None = None
    message_type: str | None = None
    media: MediaReference | None = None

    def resolve_kind(self) -> MessageKind:
        """Return the kind this draft will be stored as.

        Attachments are classified by MIME type; the client hint is only used
        when the attachment has none.

        Raises:
            InvalidRequestError: For unknown kinds or a media kind without media.
        """
        hint: MessageKind | None = None
        if self.message_type:
            try:
                hint = MessageKind(self.message_type)
            except ValueError as err:
                raise InvalidRequestError(f"Unknown message type: {self.message_type}") from err

        if self.media is None:
            if hint is not None and hint.is_media:
                raise InvalidRequestError(f"A media attachment is required for {hint.value} messages")
            return MessageKind.TEXT

        if self.media.mime_type:
            return MessageKind.from_mime_type(self.media.mime_type)
        if hint is not None and hint.is_media:
            return hint
        return MessageKind.FILE


@dataclass(frozen=True)
class DeliveredMessage:
    """Outcome of a successful send."""

    conversation: ConversationRef
    message: MessageBase

    @property
    def receiver_id(self) -> int:
        return self.message.receiver_id


@dataclass(frozen=True)
class ReadReceipt:
    """Outcome of marking a conversation read."""

    conversation: ConversationRef
    reader_id: int
    count: int


class DeliveryService:
    """Run the message pipeline against one database session."""

    def __init__(self, db: Session, codec: MessageCodec) -> None:
        self.db = db
        self.codec = codec
        self.directory = ConversationDirectory(db)
        self.store = MessageStore(db)

    def authorize(self, user_id: int, conversation_id: int) -> ConversationRef:
        """Return the conversation if ``user_id`` participates in it."""
        return ConversationRef.of(self.directory.get_for_participant(conversation_id, user_id))

    def send(self, sender_id: int, conversation_id: int, draft: MessageDraft) -> DeliveredMessage:
        """Encrypt and persist a message from ``sender_id``.

        Raises:
            NotFoundOrForbiddenError: If the sender is not a participant.
            InvalidRequestError: If the draft is malformed.
            PersistenceError: If the message could not be stored.
        """
        try:
            conversation = self.directory.get_for_participant(conversation_id, sender_id)
        except SQLAlchemyError as err:
            self.db.rollback()
            logger.error("Failed to load conversation %s: %s", conversation_id, err, exc_info=True)
            raise PersistenceError() from err
        ref = ConversationRef.of(conversation)
        receiver_id = ref.other(sender_id)
        kind = draft.resolve_kind()

        ciphertext = self.codec.encrypt(draft.content or "", ref.user1_id, ref.user2_id)
        message = self.store.append(
            conversation,
            sender_id=sender_id,
            receiver_id=receiver_id,
            kind=kind,
            ciphertext=ciphertext,
            media=draft.media if kind.is_media else None,
        )
        logger.info(
            "Stored %s message %s in conversation %s",
            kind.value,
            message.id,
            ref.id,
        )
        users = get_users(self.db, ref.participant_ids)
        return DeliveredMessage(conversation=ref, message=self._present(message, ref, users))

    def list_messages(
        self,
        user_id: int,
        conversation_id: int,
        limit: int = 50,
        offset: int = 0,
    ) -> list[MessageBase]:
        """Return an oldest-first page of decrypted messages."""
        conversation = self.directory.get_for_participant(conversation_id, user_id)
        ref = ConversationRef.of(conversation)
        users = get_users(self.db, ref.participant_ids)
        messages = self.store.list_for_display(conversation.id, limit=limit, offset=offset)
        return [self._present(message, ref, users) for message in messages]

    def mark_read(self, user_id: int, conversation_id: int) -> ReadReceipt:
        """Mark everything addressed to ``user_id`` in the conversation as read."""
        ref = self.authorize(user_id, conversation_id)
        count = self.store.mark_read(ref.id, user_id)
        if count:
            logger.debug("User %s read %d messages in conversation %s", user_id, count, ref.id)
        return ReadReceipt(conversation=ref, reader_id=user_id, count=count)

    def _present(
        self,
        message: Message,
        conversation: ConversationRef,
        users: dict[int, User],
    ) -> MessageBase:
        content = self.codec.decrypt(
            message.encrypted_content,
            conversation.user1_id,
            conversation.user2_id,
        )
        if content is None:
            logger.warning(
                "Message %s in conversation %s could not be decrypted",
                message.id,
                conversation.id,
            )
        return build_message_out(message, content, users.get(message.sender_id))
