"""Error hierarchy for the messaging subsystem.

Every error carries a human-readable ``message`` and the HTTP status it maps
to. The HTTP layer renders them as ``{"error": message}``; the push channel
emits them as ``error`` events without closing the connection.
"""

from __future__ import annotations

from fastapi import status


class ChatError(Exception):
    """Base class for all messaging failures."""

    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_response(self) -> dict[str, str]:
        """Return the JSON body sent to HTTP clients."""
        return {"error": self.message}


class AuthenticationError(ChatError):
    """Missing or invalid credential."""

    http_status = status.HTTP_401_UNAUTHORIZED
    default_message = "Could not validate credentials"


class InvalidRequestError(ChatError):
    """Malformed request, missing field or self-conversation."""

    http_status = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class NotFoundOrForbiddenError(ChatError):
    """Resource is absent or the caller may not see it.

    The two cases are reported identically so that non-participants cannot
    discover which conversations exist.
    """

    http_status = status.HTTP_404_NOT_FOUND
    default_message = "Conversation not found"


class PersistenceError(ChatError):
    """Storage unavailable or write rejected."""

    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Failed to save message"


class DecryptionError(ChatError):
    """Stored ciphertext could not be decrypted.

    Never crosses the codec boundary; callers receive ``None`` content.
    """

    default_message = "Unable to decrypt message"
