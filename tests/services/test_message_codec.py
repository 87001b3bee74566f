"""Tests for conversation key derivation and the message codec."""

import pytest

from lifehub.core.errors import DecryptionError
from lifehub.services.key_derivation import ConversationKeyDeriver
from lifehub.services.message_codec import MessageCodec


def test_derived_key_is_symmetric_in_participants() -> None:
    deriver = ConversationKeyDeriver(b"secret")
    assert deriver.derive_key(3, 17) == deriver.derive_key(17, 3)
    assert len(deriver.derive_key(3, 17)) == 32


def test_pairs_are_ordered_numerically() -> None:
    assert ConversationKeyDeriver.pair_context(10, 9).endswith(b"9-10")


def test_distinct_pairs_get_distinct_keys() -> None:
    deriver = ConversationKeyDeriver(b"secret")
    assert deriver.derive_key(1, 2) != deriver.derive_key(1, 3)
    # "1-23" and "12-3" must not collide.
    assert deriver.derive_key(1, 23) != deriver.derive_key(12, 3)


def test_key_depends_on_secret() -> None:
    assert ConversationKeyDeriver(b"one").derive_key(1, 2) != ConversationKeyDeriver(b"two").derive_key(1, 2)


def test_empty_secret_is_rejected() -> None:
    with pytest.raises(ValueError):
        ConversationKeyDeriver(b"")


def test_round_trip_in_either_participant_order(codec: MessageCodec) -> None:
    ciphertext = codec.encrypt("hello, Bob", 1, 2)
    assert ciphertext != "hello, Bob"
    assert "hello" not in ciphertext
    assert codec.decrypt(ciphertext, 2, 1) == "hello, Bob"


def test_empty_and_unicode_bodies_round_trip(codec: MessageCodec) -> None:
    for body in ("", "héllo wörld ✓"):
        assert codec.decrypt(codec.encrypt(body, 4, 5), 4, 5) == body


def test_same_plaintext_encrypts_differently(codec: MessageCodec) -> None:
    assert codec.encrypt("same", 1, 2) != codec.encrypt("same", 1, 2)


def test_other_conversation_cannot_decrypt(codec: MessageCodec) -> None:
    ciphertext = codec.encrypt("private", 1, 2)
    assert codec.decrypt(ciphertext, 1, 3) is None
    with pytest.raises(DecryptionError):
        codec.decrypt_or_raise(ciphertext, 1, 3)


def test_corrupt_ciphertext_yields_none(codec: MessageCodec) -> None:
    assert codec.decrypt("not-a-token", 1, 2) is None
    assert codec.decrypt("", 1, 2) is None


def test_rotated_secret_orphans_existing_ciphertext(codec: MessageCodec) -> None:
    ciphertext = codec.encrypt("before rotation", 1, 2)
    rotated = MessageCodec(ConversationKeyDeriver(b"rotated-secret"))
    assert rotated.decrypt(ciphertext, 1, 2) is None
