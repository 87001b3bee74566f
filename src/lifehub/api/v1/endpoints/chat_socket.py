# src/lifehub/api/v1/endpoints/chat_socket.py
"""Push channel for real-time direct messaging.

Clients connect to ``/api/v1/chat/ws`` with their bearer token in the
``token`` query parameter or the ``Authorization`` header. A bad credential
refuses the connection; any later failure is reported as an ``error`` event
and the connection stays open.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from fastapi import APIRouter, WebSocket, status
from pydantic import ValidationError
from sqlalchemy.orm import Session, sessionmaker

from lifehub.core.errors import AuthenticationError, ChatError
from lifehub.core.settings import settings
from lifehub.schemas.events import (
    ConversationTarget,
    MarkReadPayload,
    SendMessagePayload,
    SocketFrame,
    TypingPayload,
)
from lifehub.services.connection_hub import Connection, ConnectionHub
from lifehub.services.delivery import DeliveryService, MessageDraft
from lifehub.services.message_codec import MessageCodec
from lifehub.services.message_store import MediaReference
from lifehub.services.presence import PresenceTracker

from ..dependencies import CodecDep, HubDep, SessionFactoryDep, load_principal

logger = logging.getLogger(__name__)

T = TypeVar("T")

router = APIRouter(prefix="/chat", tags=["chat"])


def _extract_token(websocket: WebSocket) -> str | None:
    token = websocket.query_params.get("token")
    if token:
        return token
    header = websocket.headers.get("authorization", "")
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return None


def _authenticate(session_factory: sessionmaker[Session], token: str | None) -> tuple[int, str]:
    with session_factory() as db:
        user = load_principal(db, token)
        return user.id, user.username


class ChatEventHandler:
    """Dispatch client events for one connection, one event at a time."""

    def __init__(
        self,
        connection: Connection,
        hub: ConnectionHub,
        session_factory: sessionmaker[Session],
        codec: MessageCodec,
        presence: PresenceTracker,
    ) -> None:
        self.connection = connection
        self.hub = hub
        self.session_factory = session_factory
        self.codec = codec
        self.presence = presence
        self._handlers: dict[str, Callable[[Any], Awaitable[None]]] = {
            "join-conversation": self.on_join,
            "leave-conversation": self.on_leave,
            "send-message": self.on_send_message,
            "typing": self.on_typing,
            "mark-read": self.on_mark_read,
            "ping": self.on_ping,
        }

    def _in_session(self, operation: Callable[..., T], *args: Any) -> T:
        with self.session_factory() as db:
            return operation(DeliveryService(db, self.codec), *args)

    async def _run(self, operation: Callable[..., T], *args: Any) -> T:
        """Run a delivery operation in a worker thread with its own session.

        The session is closed before the event is answered, so an idle socket
        never holds a database connection.
        """
        return await asyncio.to_thread(self._in_session, operation, *args)

    async def dispatch(self, raw: str) -> None:
        """Handle one text frame, reporting any failure back to the client."""
        try:
            frame = SocketFrame.model_validate(json.loads(raw))
        except (ValueError, ValidationError):
            await self.emit_error("Invalid payload")
            return

        handler = self._handlers.get(frame.event)
        if handler is None:
            await self.emit_error(f"Unknown event: {frame.event}")
            return

        try:
            await handler(frame.data)
        except ValidationError:
            await self.emit_error(f"Invalid payload for {frame.event}")
        except ChatError as exc:
            await self.emit_error(exc.message)
        except Exception:
            logger.exception("Error handling %s for user %s", frame.event, self.connection.user_id)
            await self.emit_error("Internal server error")

    async def emit_error(self, message: str) -> None:
        await self.connection.send_event("error", {"message": message})

    async def on_join(self, data: Any) -> None:
        target = ConversationTarget.parse(data)
        conversation = await self._run(
            DeliveryService.authorize, self.connection.user_id, target.conversation_id
        )
        self.hub.join(self.connection, conversation.id)
        await self.connection.send_event("joined-conversation", {"conversationId": conversation.id})

    async def on_leave(self, data: Any) -> None:
        target = ConversationTarget.parse(data)
        self.hub.leave(self.connection, target.conversation_id)
        await self.connection.send_event("left-conversation", {"conversationId": target.conversation_id})

    async def on_send_message(self, data: Any) -> None:
        payload = SendMessagePayload.model_validate(data)
        media = None
        if payload.media_url:
            media = MediaReference(
                url=payload.media_url,
                mime_type=payload.media_type,
                file_name=payload.file_name,
                size=payload.file_size,
            )
        draft = MessageDraft(
            content=payload.content,
            message_type=payload.message_type,
            media=media,
        )
        delivered = await self._run(
            DeliveryService.send, self.connection.user_id, payload.conversation_id, draft
        )
        await self.presence.publish_message(delivered.conversation, delivered.message)

    async def on_typing(self, data: Any) -> None:
        payload = TypingPayload.model_validate(data)
        conversation = await self._run(
            DeliveryService.authorize, self.connection.user_id, payload.conversation_id
        )
        await self.presence.publish_typing(conversation, self.connection, payload.is_typing)

    async def on_mark_read(self, data: Any) -> None:
        payload = MarkReadPayload.model_validate(data)
        receipt = await self._run(
            DeliveryService.mark_read, self.connection.user_id, payload.conversation_id
        )
        if receipt.count:
            await self.presence.publish_read(
                receipt.conversation, receipt.reader_id, origin=self.connection
            )

    async def on_ping(self, data: Any) -> None:
        await self.connection.send_event("pong", data)


@router.websocket("/ws")
async def chat_socket(
    websocket: WebSocket,
    session_factory: SessionFactoryDep,
    codec: CodecDep,
    hub: HubDep,
) -> None:
    """Authenticate, then serve chat events until the client goes away."""
    try:
        user_id, username = await asyncio.to_thread(
            _authenticate, session_factory, _extract_token(websocket)
        )
    except AuthenticationError as exc:
        logger.info("Refusing chat connection: %s", exc.message)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=exc.message)
        return

    await websocket.accept()
    connection = Connection(websocket=websocket, user_id=user_id, username=username)
    hub.register(connection)
    handler = ChatEventHandler(
        connection,
        hub,
        session_factory,
        codec,
        PresenceTracker(hub),
    )
    try:
        await _serve(websocket, connection, handler)
    finally:
        hub.unregister(connection)


async def _serve(websocket: WebSocket, connection: Connection, handler: ChatEventHandler) -> None:
    timeout = settings.chat_heartbeat_timeout_seconds
    while True:
        try:
            message = await asyncio.wait_for(websocket.receive(), timeout=timeout)
        except TimeoutError:
            logger.info("Closing idle chat connection %s for user %s", connection.id, connection.user_id)
            await websocket.close(code=status.WS_1001_GOING_AWAY)
            return

        if message["type"] == "websocket.disconnect":
            return

        connection.touch()
        raw = message.get("text")
        if raw is None and message.get("bytes") is not None:
            raw = message["bytes"].decode("utf-8", errors="replace")
        if raw is None:
            continue
        await handler.dispatch(raw)
