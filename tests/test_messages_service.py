from datetime import datetime, timedelta

import pytest

from core.errors import NotFoundError, UnauthorizedError, ValidationError
from models import Comment, Conversation, MediaFile, Message, Reaction
from routers.conversations import service as conversations_service
from routers.messages import comments as comments_service
from routers.messages import service as messages_service


@pytest.fixture
def direct_chat(test_db, users, ids):
    return conversations_service.start_conversation(
        test_db, initiator_id=users["alice"], recipient_ids=[users["bob"]], ids=ids
    )["conversation_id"]


@pytest.fixture
def other_chat(test_db, users, ids):
    return conversations_service.start_conversation(
        test_db, initiator_id=users["bob"], recipient_ids=[users["carol"]], ids=ids
    )["conversation_id"]


def _send(db, ids, conversation_id, sender_id, content="hello", parent=None):
    return messages_service.add_message(
        db,
        conversation_id=conversation_id,
        sender_id=sender_id,
        message_type="text",
        content=content,
        parent_message_id=parent,
        ids=ids,
    )


def test_add_message_starts_delivered_and_bumps_conversation(test_db, users, ids, direct_chat):
    before = test_db.query(Conversation).filter(Conversation.id == direct_chat).one().updated_at

    message = _send(test_db, ids, direct_chat, users["alice"], content="hello bob")

    assert message["status"] == "delivered"
    assert message["content"] == "hello bob"
    assert message["content_type"] == "text/plain"
    assert message["message_id"].startswith("msg")
    test_db.expire_all()
    after = test_db.query(Conversation).filter(Conversation.id == direct_chat).one().updated_at
    assert after >= before


def test_add_message_strips_html(test_db, users, ids, direct_chat):
    message = _send(test_db, ids, direct_chat, users["alice"], content="<b>bold</b> move")

    assert message["content"] == "bold move"


def test_add_message_errors(test_db, users, ids, direct_chat):
    with pytest.raises(NotFoundError):
        _send(test_db, ids, "chat1", users["alice"])
    with pytest.raises(UnauthorizedError):
        _send(test_db, ids, direct_chat, users["carol"])
    with pytest.raises(ValidationError):
        _send(test_db, ids, direct_chat, users["alice"], content="   ")
    with pytest.raises(ValidationError):
        messages_service.add_message(
            test_db,
            conversation_id=direct_chat,
            sender_id=users["alice"],
            message_type="video",
            content="x",
            ids=ids,
        )
    assert test_db.query(Message).count() == 0


def test_reply_in_same_conversation(test_db, users, ids, direct_chat):
    parent = _send(test_db, ids, direct_chat, users["alice"], content="question?")
    reply = _send(test_db, ids, direct_chat, users["bob"], content="answer", parent=parent["message_id"])

    assert reply["parent_message_id"] == parent["message_id"]


def test_parent_from_other_conversation_is_rejected(test_db, users, ids, direct_chat, other_chat):
    foreign = _send(test_db, ids, other_chat, users["bob"], content="elsewhere")

    with pytest.raises(ValidationError):
        _send(test_db, ids, direct_chat, users["bob"], content="reply", parent=foreign["message_id"])

    assert test_db.query(Message).filter(Message.conversation_id == direct_chat).count() == 0


def test_missing_parent_is_not_found(test_db, users, ids, direct_chat):
    with pytest.raises(NotFoundError):
        _send(test_db, ids, direct_chat, users["bob"], content="reply", parent="msg000000000")


def test_photo_message_points_at_stored_media(test_db, users, ids, direct_chat, png_bytes):
    message = messages_service.add_photo_message(
        test_db,
        conversation_id=direct_chat,
        sender_id=users["alice"],
        photo=png_bytes,
        mime_type="image/png",
        ids=ids,
    )

    assert message["type"] == "photo"
    assert message["content_type"] == "image/png"
    media_id = message["content"].rsplit("/", 1)[-1]
    assert message["content"] == f"/media/{media_id}"
    assert test_db.query(MediaFile).filter(MediaFile.id == media_id).one().file_data == png_bytes


def test_photo_message_with_bad_type_writes_nothing(test_db, users, ids, direct_chat, png_bytes):
    with pytest.raises(ValidationError):
        messages_service.add_photo_message(
            test_db,
            conversation_id=direct_chat,
            sender_id=users["alice"],
            photo=png_bytes,
            mime_type="application/pdf",
            ids=ids,
        )

    assert test_db.query(MediaFile).count() == 0
    assert test_db.query(Message).count() == 0


def test_forward_preserves_provenance(test_db, users, ids, direct_chat, other_chat):
    original = _send(test_db, ids, direct_chat, users["alice"], content="hi")
    stored = test_db.query(Message).filter(Message.id == original["message_id"]).one()
    # Age the original so a copied timestamp is easy to tell apart
    stored.created_at = datetime.utcnow() - timedelta(hours=3)
    test_db.commit()
    original_created_at = stored.created_at

    forwarded = messages_service.forward_message(
        test_db,
        original_message_id=original["message_id"],
        target_conversation_id=other_chat,
        forwarder_id=users["bob"],
        ids=ids,
    )

    assert forwarded["message_id"] != original["message_id"]
    assert forwarded["conversation_id"] == other_chat
    assert forwarded["status"] == "delivered"
    assert forwarded["content"] == "hi"
    assert forwarded["is_forwarded"] is True
    assert forwarded["sender_id"] == users["bob"]
    assert forwarded["original_sender_id"] == users["alice"]
    assert forwarded["original_sender_name"] == "alice"
    assert forwarded["original_timestamp"] == original_created_at.isoformat()
    assert forwarded["timestamp"] != forwarded["original_timestamp"]


def test_forward_requires_both_memberships(test_db, users, ids, direct_chat, other_chat):
    original = _send(test_db, ids, direct_chat, users["alice"], content="hi")

    # alice is not in bob/carol's conversation
    with pytest.raises(UnauthorizedError):
        messages_service.forward_message(
            test_db,
            original_message_id=original["message_id"],
            target_conversation_id=other_chat,
            forwarder_id=users["alice"],
            ids=ids,
        )
    with pytest.raises(NotFoundError):
        messages_service.forward_message(
            test_db,
            original_message_id="msg000000000",
            target_conversation_id=other_chat,
            forwarder_id=users["bob"],
            ids=ids,
        )
    with pytest.raises(NotFoundError):
        messages_service.forward_message(
            test_db,
            original_message_id=original["message_id"],
            target_conversation_id="chat1",
            forwarder_id=users["bob"],
            ids=ids,
        )


def test_delete_message_removes_reactions_and_comments(test_db, users, ids, direct_chat):
    message = _send(test_db, ids, direct_chat, users["alice"], content="delete me")
    comments_service.add_comment(
        test_db, message_id=message["message_id"], user_id=users["bob"], content="\U0001F44D", ids=ids
    )
    comments_service.add_comment(
        test_db, message_id=message["message_id"], user_id=users["bob"], content="why though", ids=ids
    )

    with pytest.raises(UnauthorizedError):
        messages_service.delete_message(
            test_db, message_id=message["message_id"], requester_id=users["bob"]
        )

    result = messages_service.delete_message(
        test_db, message_id=message["message_id"], requester_id=users["alice"]
    )

    assert result["deleted"] is True
    assert result["message"]["message_id"] == message["message_id"]
    assert test_db.query(Message).count() == 0
    assert test_db.query(Reaction).count() == 0
    assert test_db.query(Comment).count() == 0

    with pytest.raises(NotFoundError):
        messages_service.delete_message(
            test_db, message_id=message["message_id"], requester_id=users["alice"]
        )


def test_get_message_for_participants_only(test_db, users, ids, direct_chat):
    message = _send(test_db, ids, direct_chat, users["alice"], content="just us")

    fetched = messages_service.get_message(
        test_db, message_id=message["message_id"], user_id=users["bob"]
    )
    assert fetched["content"] == "just us"
    assert fetched["reactions"] == [] and fetched["comments"] == []

    with pytest.raises(UnauthorizedError):
        messages_service.get_message(test_db, message_id=message["message_id"], user_id=users["carol"])
