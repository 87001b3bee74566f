# src/lifehub/schemas/events.py
"""Push channel frame and event payload schemas.

Frames are JSON objects ``{"event": <name>, "data": <payload>}`` in both
directions. Payload keys are camelCase on the wire.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SocketFrame(BaseModel):
    """Envelope of every frame on the push channel."""

    event: str
    data: Any = None


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ConversationTarget(_CamelModel):
    """Payload of ``join-conversation`` / ``leave-conversation``."""

    conversation_id: int = Field(alias="conversationId")

    @classmethod
    def parse(cls, data: Any) -> "ConversationTarget":
        """Accept either a bare id or ``{"conversationId": id}``."""
        if isinstance(data, (int, str)):
            return cls.model_validate({"conversationId": data})
        return cls.model_validate(data)


class SendMessagePayload(_CamelModel):
    """Payload of ``send-message``."""

    conversation_id: int = Field(alias="conversationId")
    content: str | None = None
    message_type: str = Field(default="text", alias="messageType")
    media_url: str | None = Field(default=None, alias="mediaUrl")
    media_type: str | None = Field(default=None, alias="mediaType")
    file_name: str | None = Field(default=None, alias="fileName")
    file_size: int | None = Field(default=None, alias="fileSize", ge=0)

    @field_validator("message_type", mode="before")
    @classmethod
    def default_message_type(cls, value: Any) -> Any:
        return value or "text"


class TypingPayload(_CamelModel):
    """Payload of ``typing``."""

    conversation_id: int = Field(alias="conversationId")
    is_typing: bool = Field(default=True, alias="isTyping")


class MarkReadPayload(_CamelModel):
    """Payload of ``mark-read``."""

    conversation_id: int = Field(alias="conversationId")
