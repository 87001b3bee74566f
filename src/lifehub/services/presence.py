# src/lifehub/services/presence.py
"""Fan-out of new messages, typing indicators and read receipts.

Nothing here is persisted. Read receipts are hints for connected clients;
the ``read_at`` watermark in the message store is the source of truth.
"""

from __future__ import annotations

from lifehub.schemas.message import MessageBase
from lifehub.services.connection_hub import Connection, ConnectionHub
from lifehub.services.conversations import ConversationRef


class PresenceTracker:
    """Publish conversation events to the two participants' live connections."""

    def __init__(self, hub: ConnectionHub) -> None:
        self.hub = hub

    async def publish_message(self, conversation: ConversationRef, message: MessageBase) -> None:
        """Announce a stored message to the conversation and the receiver's inbox."""
        data = message.model_dump(mode="json")
        await self.hub.emit_to_conversation(
            conversation.id,
            conversation.participant_ids,
            "new-message",
            data,
        )
        await self.hub.emit_to_user(
            message.receiver_id,
            "message-received",
            {"conversationId": conversation.id, "message": data},
        )

    async def publish_typing(
        self,
        conversation: ConversationRef,
        origin: Connection,
        is_typing: bool,
    ) -> None:
        """Relay a typing indicator to everyone else in the conversation group."""
        await self.hub.emit_to_conversation(
            conversation.id,
            conversation.participant_ids,
            "user-typing",
            {"userId": origin.user_id, "username": origin.username, "isTyping": is_typing},
            exclude=origin,
        )

    async def publish_read(
        self,
        conversation: ConversationRef,
        reader_id: int,
        origin: Connection | None = None,
    ) -> None:
        """Tell the conversation group and the other participant that messages were read."""
        allowed = set(conversation.participant_ids)
        targets = [
            conn
            for conn in self.hub.group_members(conversation.id)
            if conn.user_id in allowed and conn is not origin
        ]
        targets.extend(self.hub.connections_for_user(conversation.other(reader_id)))
        await self.hub.emit(
            targets,
            "messages-read",
            {"conversationId": conversation.id, "readBy": reader_id},
        )
