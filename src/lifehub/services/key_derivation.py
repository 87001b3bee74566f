# src/lifehub/services/key_derivation.py
"""Per-conversation key derivation."""

from __future__ import annotations

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

KEY_LENGTH_BYTES = 32
KEY_CONTEXT_PREFIX = b"lifehub-conversation-key:v1:"


class ConversationKeyDeriver:
    """Derive conversation keys from a process-wide secret.

    Keys are never stored. The same pair of participants always yields the
    same key, whichever of them is passed first, for any process holding
    the same secret. Changing the secret orphans every existing ciphertext.
    """

    def __init__(self, secret: bytes) -> None:
        if not secret:
            raise ValueError("Encryption secret must not be empty")
        self._secret = bytes(secret)

    @staticmethod
    def pair_context(participant_a: int | str, participant_b: int | str) -> bytes:
        """Return the order-independent HKDF context for a participant pair."""
        ordered = sorted((participant_a, participant_b), key=_sort_key)
        return KEY_CONTEXT_PREFIX + "-".join(str(part) for part in ordered).encode()

    def derive_key(self, participant_a: int | str, participant_b: int | str) -> bytes:
        """Return 32 bytes of key material for the conversation between two participants."""
        hkdf = HKDF(
            algorithm=hashes.SHA256(),
            length=KEY_LENGTH_BYTES,
            salt=None,
            info=self.pair_context(participant_a, participant_b),
        )
        return hkdf.derive(self._secret)


def _sort_key(value: int | str) -> tuple[int, int | str]:
    # Integers sort numerically and ahead of opaque string identifiers.
    if isinstance(value, int):
        return (0, value)
    return (1, str(value))
