# src/lifehub/services/message_codec.py
"""Encryption and decryption of message bodies."""

from __future__ import annotations

import base64
import logging

from cryptography.fernet import Fernet, InvalidToken

from lifehub.core.errors import DecryptionError
from lifehub.services.key_derivation import ConversationKeyDeriver

logger = logging.getLogger(__name__)


class MessageCodec:
    """Service isolating every cryptographic operation on message content.

    Bodies are sealed with Fernet (AES-CBC with an HMAC-SHA256 tag and a
    fresh IV per message) under the conversation key.
    """

    def __init__(self, deriver: ConversationKeyDeriver) -> None:
        self._deriver = deriver

    def _fernet(self, participant_a: int | str, participant_b: int | str) -> Fernet:
        key = self._deriver.derive_key(participant_a, participant_b)
        return Fernet(base64.urlsafe_b64encode(key))

    def encrypt(self, plaintext: str, participant_a: int | str, participant_b: int | str) -> str:
        """Encrypt ``plaintext`` for the conversation between two participants.

        Empty strings are encrypted as well so every stored row has a body.
        """
        token = self._fernet(participant_a, participant_b).encrypt(plaintext.encode("utf-8"))
        return token.decode("ascii")

    def decrypt_or_raise(
        self,
        ciphertext: str,
        participant_a: int | str,
        participant_b: int | str,
    ) -> str:
        """Decrypt ``ciphertext`` and raise DecryptionError on any failure."""
        try:
            raw = self._fernet(participant_a, participant_b).decrypt(ciphertext)
            return raw.decode("utf-8")
        except (InvalidToken, TypeError, ValueError) as err:
            raise DecryptionError() from err

    def decrypt(
        self,
        ciphertext: str,
        participant_a: int | str,
        participant_b: int | str,
    ) -> str | None:
        """Decrypt ``ciphertext``; return None if it is corrupt or keyed differently."""
        try:
            return self.decrypt_or_raise(ciphertext, participant_a, participant_b)
        except DecryptionError:
            logger.warning(
                "Failed to decrypt message body for participants %s/%s",
                participant_a,
                participant_b,
            )
            return None
