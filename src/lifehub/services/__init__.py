# src/lifehub/services/__init__.py
"""Business logic services for the LifeHub messaging subsystem."""

from .connection_hub import Connection, ConnectionHub, HeartbeatSweeper
from .conversations import ConversationDirectory, ConversationRef, ConversationSummary
from .delivery import DeliveredMessage, DeliveryService, MessageDraft, ReadReceipt
from .key_derivation import ConversationKeyDeriver
from .media_storage import MediaStorage, StoredMedia
from .message_codec import MessageCodec
from .message_store import MediaReference, MessageStore
from .presence import PresenceTracker

__all__ = [
    "Connection",
    "ConnectionHub",
    "HeartbeatSweeper",
    "ConversationDirectory",
    "ConversationRef",
    "ConversationSummary",
    "DeliveredMessage",
    "DeliveryService",
    "MessageDraft",
    "ReadReceipt",
    "ConversationKeyDeriver",
    "MediaStorage",
    "StoredMedia",
    "MessageCodec",
    "MediaReference",
    "MessageStore",
    "PresenceTracker",
]
