# src/lifehub/schemas/message.py
"""Message-related Pydantic schemas.

Outgoing messages are a tagged variant keyed on ``message_type``; only the
media kinds carry attachment fields. Ciphertext is never part of any schema.
"""

from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from lifehub.models import Message, MessageKind, User


class MessageBase(BaseModel):
    """Fields common to every message kind."""

    id: int
    conversation_id: int
    sender_id: int
    receiver_id: int
    content: str | None = Field(
        None, description="Decrypted body; null when the stored ciphertext is unreadable"
    )
    created_at: datetime
    read_at: datetime | None = None
    sender_username: str | None = None
    sender_name: str | None = None

    model_config = ConfigDict(from_attributes=True)


class TextMessageOut(MessageBase):
    message_type: Literal["text"] = "text"


class MediaMessageBase(MessageBase):
    """Fields shared by messages that carry an attachment."""

    media_url: str
    media_type: str | None = None
    file_name: str | None = None
    file_size: int | None = None


class ImageMessageOut(MediaMessageBase):
    message_type: Literal["image"] = "image"


class VideoMessageOut(MediaMessageBase):
    message_type: Literal["video"] = "video"


class AudioMessageOut(MediaMessageBase):
    message_type: Literal["audio"] = "audio"


class FileMessageOut(MediaMessageBase):
    message_type: Literal["file"] = "file"


MessageOut = Annotated[
    Union[TextMessageOut, ImageMessageOut, VideoMessageOut, AudioMessageOut, FileMessageOut],
    Field(discriminator="message_type"),
]

MESSAGE_VARIANTS: dict[MessageKind, type[MessageBase]] = {
    MessageKind.TEXT: TextMessageOut,
    MessageKind.IMAGE: ImageMessageOut,
    MessageKind.VIDEO: VideoMessageOut,
    MessageKind.AUDIO: AudioMessageOut,
    MessageKind.FILE: FileMessageOut,
}


def build_message_out(
    message: Message,
    content: str | None,
    sender: User | None = None,
) -> MessageBase:
    """Return the caller-facing representation of a stored message."""
    kind = message.kind
    payload: dict[str, Any] = {
        "id": message.id,
        "conversation_id": message.conversation_id,
        "sender_id": message.sender_id,
        "receiver_id": message.receiver_id,
        "message_type": kind.value,
        "content": content,
        "created_at": message.created_at,
        "read_at": message.read_at,
        "sender_username": sender.username if sender else None,
        "sender_name": sender.display_name if sender else None,
    }
    if kind.is_media:
        payload.update(
            media_url=message.media_url,
            media_type=message.media_type,
            file_name=message.file_name,
            file_size=message.file_size,
        )
    return MESSAGE_VARIANTS[kind].model_validate(payload)


class MarkReadResponse(BaseModel):
    """Result of marking a conversation as read."""

    message: str = "Messages marked as read"
    count: int
