"""Registry of live push channel connections.

This module tracks which WebSocket connections belong to which user and
which conversation broadcast groups each connection has joined. All state is
owned by the event loop; mutations never await, so no lock is needed.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Protocol

from fastapi import WebSocketDisconnect, status

logger = logging.getLogger(__name__)


class EventSink(Protocol):
    """Subset of the WebSocket API the hub relies on."""

    async def send_json(self, data: Any, mode: str = "text") -> None: ...

    async def close(self, code: int = 1000, reason: str | None = None) -> None: ...


@dataclass(eq=False)
class Connection:
    """One authenticated push channel session."""

    websocket: EventSink
    user_id: int
    username: str | None = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    conversations: set[int] = field(default_factory=set)
    last_seen: float = field(default_factory=time.monotonic)

    def __hash__(self) -> int:
        return id(self)

    def touch(self) -> None:
        self.last_seen = time.monotonic()

    def idle_for(self, now: float | None = None) -> float:
        return (now if now is not None else time.monotonic()) - self.last_seen

    async def send_event(self, event: str, data: Any) -> bool:
        """Send one event frame; return False if the socket is gone."""
        try:
            await self.websocket.send_json({"event": event, "data": data})
            return True
        except (WebSocketDisconnect, RuntimeError, OSError) as exc:
            logger.debug("Dropping event %s for connection %s: %s", event, self.id, exc)
            return False


class ConnectionHub:
    """Personal channels per user and broadcast groups per conversation."""

    def __init__(self) -> None:
        self._users: dict[int, set[Connection]] = defaultdict(set)
        self._groups: dict[int, set[Connection]] = defaultdict(set)

    def register(self, connection: Connection) -> None:
        self._users[connection.user_id].add(connection)
        logger.info("User %s connected (%s)", connection.user_id, connection.id)

    def unregister(self, connection: Connection) -> None:
        """Remove a connection from its personal channel and every group."""
        for conversation_id in list(connection.conversations):
            self._discard_member(conversation_id, connection)
        connection.conversations.clear()

        conns = self._users.get(connection.user_id)
        if conns is not None and connection in conns:
            conns.discard(connection)
            if not conns:
                self._users.pop(connection.user_id, None)
            logger.info("User %s disconnected (%s)", connection.user_id, connection.id)

    def join(self, connection: Connection, conversation_id: int) -> None:
        connection.conversations.add(conversation_id)
        self._groups[conversation_id].add(connection)
        logger.debug("User %s joined conversation %s", connection.user_id, conversation_id)

    def leave(self, connection: Connection, conversation_id: int) -> None:
        connection.conversations.discard(conversation_id)
        self._discard_member(conversation_id, connection)
        logger.debug("User %s left conversation %s", connection.user_id, conversation_id)

    def _discard_member(self, conversation_id: int, connection: Connection) -> None:
        members = self._groups.get(conversation_id)
        if members is None:
            return
        members.discard(connection)
        if not members:
            self._groups.pop(conversation_id, None)

    def connections_for_user(self, user_id: int) -> list[Connection]:
        return list(self._users.get(user_id, ()))

    def group_members(self, conversation_id: int) -> list[Connection]:
        return list(self._groups.get(conversation_id, ()))

    def all_connections(self) -> list[Connection]:
        return [conn for conns in self._users.values() for conn in conns]

    def is_online(self, user_id: int) -> bool:
        return bool(self._users.get(user_id))

    async def emit(self, targets: Iterable[Connection], event: str, data: Any) -> int:
        """Send an event to each target once; unregister targets that fail."""
        delivered = 0
        for connection in list(dict.fromkeys(targets)):
            if await connection.send_event(event, data):
                delivered += 1
            else:
                self.unregister(connection)
        return delivered

    async def emit_to_user(
        self,
        user_id: int,
        event: str,
        data: Any,
        exclude: Connection | None = None,
    ) -> int:
        targets = [conn for conn in self.connections_for_user(user_id) if conn is not exclude]
        return await self.emit(targets, event, data)

    async def emit_to_conversation(
        self,
        conversation_id: int,
        participant_ids: Iterable[int],
        event: str,
        data: Any,
        exclude: Connection | None = None,
    ) -> int:
        """Send to the conversation group, limited to the participants' connections."""
        allowed = set(participant_ids)
        targets = [
            conn
            for conn in self.group_members(conversation_id)
            if conn.user_id in allowed and conn is not exclude
        ]
        return await self.emit(targets, event, data)

    async def sweep_stale(self, timeout: float, now: float | None = None) -> list[Connection]:
        """Close and unregister connections idle for longer than ``timeout`` seconds."""
        stale = [conn for conn in self.all_connections() if conn.idle_for(now) > timeout]
        for connection in stale:
            self.unregister(connection)
            try:
                await connection.websocket.close(code=status.WS_1001_GOING_AWAY)
            except (RuntimeError, OSError) as exc:
                logger.debug("Stale connection %s already closed: %s", connection.id, exc)
        if stale:
            logger.info("Swept %d stale connections", len(stale))
        return stale


class HeartbeatSweeper:
    """Periodically removes connections that stopped sending frames."""

    def __init__(self, hub: ConnectionHub, interval: float, timeout: float) -> None:
        self.hub = hub
        self.interval = max(0.1, float(interval))
        self.timeout = float(timeout)
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    async def start(self) -> None:
        """Start the background sweep loop."""
        if self._task is None or self._task.done():
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the background sweep loop."""
        if self._task is None:
            return
        self._stopping.set()
        await self._task
        self._task = None

    async def _run(self) -> None:
        while not self._stopping.is_set():
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.interval)
            except TimeoutError:
                await self.hub.sweep_stale(self.timeout)


hub = ConnectionHub()


def get_hub() -> ConnectionHub:
    """Return the process-wide connection hub."""
    return hub
