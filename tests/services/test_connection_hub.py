"""Tests for the connection hub and presence fan-out."""

import asyncio
from datetime import datetime, timezone

import pytest
from fastapi import WebSocketDisconnect

from lifehub.schemas.message import TextMessageOut
from lifehub.services.connection_hub import Connection, ConnectionHub, HeartbeatSweeper
from lifehub.services.conversations import ConversationRef
from lifehub.services.presence import PresenceTracker


class FakeSocket:
    """Records frames instead of sending them."""

    def __init__(self, fail: bool = False) -> None:
        self.sent: list[dict] = []
        self.closed_with: int | None = None
        self.fail = fail

    async def send_json(self, data, mode: str = "text") -> None:
        if self.fail:
            raise WebSocketDisconnect(code=1006)
        self.sent.append(data)

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        self.closed_with = code

    def events(self) -> list[str]:
        return [frame["event"] for frame in self.sent]


def _connect(hub: ConnectionHub, user_id: int, fail: bool = False) -> Connection:
    connection = Connection(websocket=FakeSocket(fail=fail), user_id=user_id, username=f"u{user_id}")
    hub.register(connection)
    return connection


def _message(conversation_id: int, sender_id: int, receiver_id: int) -> TextMessageOut:
    return TextMessageOut(
        id=1,
        conversation_id=conversation_id,
        sender_id=sender_id,
        receiver_id=receiver_id,
        content="hi",
        created_at=datetime.now(timezone.utc),
    )


def test_register_and_unregister() -> None:
    hub = ConnectionHub()
    first = _connect(hub, 1)
    second = _connect(hub, 1)
    hub.join(first, 10)

    assert hub.is_online(1)
    assert len(hub.connections_for_user(1)) == 2

    hub.unregister(first)
    assert hub.group_members(10) == []
    assert hub.connections_for_user(1) == [second]

    hub.unregister(second)
    hub.unregister(second)
    assert not hub.is_online(1)


@pytest.mark.asyncio
async def test_new_message_reaches_only_participants() -> None:
    hub = ConnectionHub()
    presence = PresenceTracker(hub)
    conversation = ConversationRef(id=10, user1_id=1, user2_id=2)
    sender = _connect(hub, 1)
    receiver = _connect(hub, 2)
    receiver_phone = _connect(hub, 2)
    intruder = _connect(hub, 3)
    hub.join(sender, 10)
    hub.join(receiver, 10)
    # A non-participant that somehow joined the group still receives nothing.
    hub.join(intruder, 10)

    await presence.publish_message(conversation, _message(10, 1, 2))

    assert sender.websocket.events() == ["new-message"]
    assert receiver.websocket.events() == ["new-message", "message-received"]
    assert receiver_phone.websocket.events() == ["message-received"]
    assert intruder.websocket.sent == []
    assert receiver.websocket.sent[1]["data"]["conversationId"] == 10
    assert receiver.websocket.sent[1]["data"]["message"]["content"] == "hi"


@pytest.mark.asyncio
async def test_typing_is_not_echoed_to_origin() -> None:
    hub = ConnectionHub()
    presence = PresenceTracker(hub)
    conversation = ConversationRef(id=10, user1_id=1, user2_id=2)
    typist = _connect(hub, 1)
    peer = _connect(hub, 2)
    hub.join(typist, 10)
    hub.join(peer, 10)

    await presence.publish_typing(conversation, typist, True)

    assert typist.websocket.sent == []
    assert peer.websocket.sent == [
        {"event": "user-typing", "data": {"userId": 1, "username": "u1", "isTyping": True}}
    ]


@pytest.mark.asyncio
async def test_read_receipt_reaches_group_and_other_participant_once() -> None:
    hub = ConnectionHub()
    presence = PresenceTracker(hub)
    conversation = ConversationRef(id=10, user1_id=1, user2_id=2)
    reader = _connect(hub, 2)
    writer = _connect(hub, 1)
    hub.join(reader, 10)
    hub.join(writer, 10)

    await presence.publish_read(conversation, reader_id=2, origin=reader)

    assert reader.websocket.sent == []
    assert writer.websocket.sent == [{"event": "messages-read", "data": {"conversationId": 10, "readBy": 2}}]


@pytest.mark.asyncio
async def test_failed_send_unregisters_connection() -> None:
    hub = ConnectionHub()
    healthy = _connect(hub, 2)
    broken = _connect(hub, 2, fail=True)
    hub.join(broken, 10)

    delivered = await hub.emit_to_user(2, "ping", {})

    assert delivered == 1
    assert healthy.websocket.events() == ["ping"]
    assert hub.connections_for_user(2) == [healthy]
    assert hub.group_members(10) == []


@pytest.mark.asyncio
async def test_sweep_closes_idle_connections() -> None:
    hub = ConnectionHub()
    idle = _connect(hub, 1)
    active = _connect(hub, 2)
    idle.last_seen = 100.0
    active.last_seen = 150.0

    swept = await hub.sweep_stale(timeout=60, now=170.0)

    assert swept == [idle]
    assert idle.websocket.closed_with == 1001
    assert active.websocket.closed_with is None
    assert not hub.is_online(1)
    assert hub.is_online(2)


@pytest.mark.asyncio
async def test_heartbeat_sweeper_starts_and_stops(mocker) -> None:
    hub = ConnectionHub()
    sweep = mocker.patch.object(hub, "sweep_stale", mocker.AsyncMock(return_value=[]))
    sweeper = HeartbeatSweeper(hub, interval=0.1, timeout=5)

    await sweeper.start()
    await asyncio.sleep(0.25)
    await sweeper.stop()

    assert sweep.await_count >= 1
    sweep.assert_awaited_with(5.0)
