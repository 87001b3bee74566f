"""Tests for the delivery pipeline."""

import pytest
from sqlalchemy.exc import OperationalError

from lifehub.core.errors import InvalidRequestError, NotFoundOrForbiddenError, PersistenceError
from lifehub.models import Message, MessageKind
from lifehub.schemas.message import FileMessageOut, ImageMessageOut, TextMessageOut
from lifehub.services.conversations import ConversationDirectory
from lifehub.services.delivery import DeliveryService, MessageDraft
from lifehub.services.message_store import MediaReference


@pytest.fixture()
def delivery(db_session, codec) -> DeliveryService:
    return DeliveryService(db_session, codec)


@pytest.fixture()
def conversation(db_session, alice, bob):
    conversation, _ = ConversationDirectory(db_session).get_or_create(alice.id, bob.id)
    return conversation


@pytest.mark.parametrize(
    ("draft", "expected"),
    [
        (MessageDraft(content="hi"), MessageKind.TEXT),
        (MessageDraft(content="hi", message_type="text"), MessageKind.TEXT),
        (MessageDraft(media=MediaReference(url="/m/a", mime_type="image/png")), MessageKind.IMAGE),
        (MessageDraft(media=MediaReference(url="/m/a", mime_type="video/mp4")), MessageKind.VIDEO),
        (MessageDraft(media=MediaReference(url="/m/a", mime_type="audio/ogg")), MessageKind.AUDIO),
        (MessageDraft(media=MediaReference(url="/m/a", mime_type="application/pdf")), MessageKind.FILE),
        (MessageDraft(message_type="video", media=MediaReference(url="/m/a")), MessageKind.VIDEO),
        (MessageDraft(media=MediaReference(url="/m/a")), MessageKind.FILE),
        # The attachment's MIME type wins over the client hint.
        (MessageDraft(message_type="file", media=MediaReference(url="/m/a", mime_type="image/jpeg")), MessageKind.IMAGE),
    ],
)
def test_resolve_kind(draft: MessageDraft, expected: MessageKind) -> None:
    assert draft.resolve_kind() is expected


def test_resolve_kind_rejects_bad_drafts() -> None:
    with pytest.raises(InvalidRequestError, match="Unknown message type"):
        MessageDraft(content="x", message_type="sticker").resolve_kind()
    with pytest.raises(InvalidRequestError, match="media attachment is required"):
        MessageDraft(message_type="image").resolve_kind()


def test_send_stores_only_ciphertext(delivery, db_session, conversation, alice, bob) -> None:
    delivered = delivery.send(alice.id, conversation.id, MessageDraft(content="hello, Bob"))

    assert isinstance(delivered.message, TextMessageOut)
    assert delivered.message.content == "hello, Bob"
    assert delivered.message.sender_id == alice.id
    assert delivered.receiver_id == bob.id
    assert delivered.message.sender_username == "alice"
    assert delivered.message.sender_name == "Alice Anders"
    assert delivered.conversation.id == conversation.id

    row = db_session.get(Message, delivered.message.id)
    assert row.encrypted_content != "hello, Bob"
    assert "hello" not in row.encrypted_content


def test_send_media_with_caption(delivery, conversation, bob) -> None:
    media = MediaReference(url="/uploads/chat-media/a.jpg", mime_type="image/jpeg", file_name="a.jpg", size=3)

    delivered = delivery.send(bob.id, conversation.id, MessageDraft(content="look", media=media))

    assert isinstance(delivered.message, ImageMessageOut)
    assert delivered.message.content == "look"
    assert delivered.message.media_url == "/uploads/chat-media/a.jpg"
    assert delivered.message.file_size == 3


def test_media_without_caption_has_empty_content(delivery, conversation, alice) -> None:
    media = MediaReference(url="/uploads/chat-media/r.pdf", mime_type="application/pdf", file_name="r.pdf")

    delivered = delivery.send(alice.id, conversation.id, MessageDraft(media=media))

    assert isinstance(delivered.message, FileMessageOut)
    assert delivered.message.content == ""


def test_third_party_cannot_send_or_read(delivery, db_session, conversation, carol) -> None:
    with pytest.raises(NotFoundOrForbiddenError):
        delivery.send(carol.id, conversation.id, MessageDraft(content="intrusion"))
    with pytest.raises(NotFoundOrForbiddenError):
        delivery.list_messages(carol.id, conversation.id)
    with pytest.raises(NotFoundOrForbiddenError):
        delivery.mark_read(carol.id, conversation.id)
    assert db_session.query(Message).count() == 0


def test_lookup_failure_during_send_is_a_persistence_error(
    delivery, db_session, conversation, alice, monkeypatch
) -> None:
    def _locked(self, conversation_id, user_id):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    monkeypatch.setattr(ConversationDirectory, "get_for_participant", _locked)

    with pytest.raises(PersistenceError) as exc_info:
        delivery.send(alice.id, conversation.id, MessageDraft(content="hi"))
    assert exc_info.value.message == "Failed to save message"
    assert isinstance(exc_info.value.__cause__, OperationalError)
    assert db_session.query(Message).count() == 0


def test_list_messages_is_oldest_first_and_decrypted(delivery, conversation, alice, bob) -> None:
    for body, sender in (("one", alice), ("two", bob), ("three", alice)):
        delivery.send(sender.id, conversation.id, MessageDraft(content=body))

    assert [m.content for m in delivery.list_messages(bob.id, conversation.id)] == ["one", "two", "three"]
    assert [m.content for m in delivery.list_messages(bob.id, conversation.id, limit=2)] == ["two", "three"]
    assert [m.content for m in delivery.list_messages(bob.id, conversation.id, limit=2, offset=2)] == ["one"]


def test_undecryptable_rows_are_returned_with_null_content(delivery, db_session, conversation, alice) -> None:
    delivered = delivery.send(alice.id, conversation.id, MessageDraft(content="fine"))
    broken = delivery.send(alice.id, conversation.id, MessageDraft(content="will break"))
    row = db_session.get(Message, broken.message.id)
    row.encrypted_content = "corrupted"
    db_session.commit()

    contents = {m.id: m.content for m in delivery.list_messages(alice.id, conversation.id)}

    assert contents == {delivered.message.id: "fine", broken.message.id: None}


def test_mark_read_reports_transitioned_count(delivery, conversation, alice, bob) -> None:
    delivery.send(alice.id, conversation.id, MessageDraft(content="a"))
    delivery.send(alice.id, conversation.id, MessageDraft(content="b"))

    receipt = delivery.mark_read(bob.id, conversation.id)
    assert (receipt.count, receipt.reader_id, receipt.conversation.id) == (2, bob.id, conversation.id)
    assert delivery.mark_read(bob.id, conversation.id).count == 0
    assert all(m.read_at is not None for m in delivery.list_messages(bob.id, conversation.id))
