from datetime import datetime, timedelta

import pytest

from core.errors import NotFoundError, ValidationError
from models import Conversation, ConversationParticipant, Group, GroupMember, Message
from routers.conversations import service as conversations_service
from routers.messages import comments as comments_service
from routers.messages import service as messages_service


def _start_direct(db, users, ids, initiator="alice", recipient="bob"):
    return conversations_service.start_conversation(
        db,
        initiator_id=users[initiator],
        recipient_ids=[users[recipient]],
        title=None,
        is_group=False,
        ids=ids,
    )


def test_direct_conversation_is_idempotent(test_db, users, ids):
    first = _start_direct(test_db, users, ids)
    second = _start_direct(test_db, users, ids, initiator="bob", recipient="alice")

    assert first["created"] is True
    assert second["created"] is False
    assert second["conversation_id"] == first["conversation_id"]
    assert test_db.query(Conversation).count() == 1
    assert sorted(second["participants"]) == sorted([users["alice"], users["bob"]])


def test_existing_direct_conversation_without_pair_key_is_found(test_db, users, ids):
    legacy = Conversation(id="chat777", title="legacy", is_group=False, direct_key=None)
    test_db.add(legacy)
    test_db.add_all(
        [
            ConversationParticipant(conversation_id="chat777", user_id=users["alice"]),
            ConversationParticipant(conversation_id="chat777", user_id=users["bob"]),
        ]
    )
    test_db.commit()

    result = _start_direct(test_db, users, ids)

    assert result["created"] is False
    assert result["conversation_id"] == "chat777"


def test_direct_conversation_requires_exactly_one_other_user(test_db, users, ids):
    with pytest.raises(ValidationError):
        conversations_service.start_conversation(
            test_db,
            initiator_id=users["alice"],
            recipient_ids=[users["bob"], users["carol"]],
            is_group=False,
            ids=ids,
        )
    with pytest.raises(ValidationError):
        conversations_service.start_conversation(
            test_db,
            initiator_id=users["alice"],
            recipient_ids=[users["alice"]],
            is_group=False,
            ids=ids,
        )


def test_group_creation_writes_both_membership_tables(test_db, users, ids):
    result = conversations_service.start_conversation(
        test_db,
        initiator_id=users["alice"],
        recipient_ids=[users["bob"], users["carol"], users["bob"]],
        title="Book Club",
        is_group=True,
        ids=ids,
    )

    group_id = result["conversation_id"]
    assert result["created"] is True
    assert result["is_group"] is True
    assert result["participants"] == [users["alice"], users["bob"], users["carol"]]
    assert test_db.query(Group).filter(Group.id == group_id).one().name == "Book Club"

    participant_ids = {
        p.user_id
        for p in test_db.query(ConversationParticipant).filter(
            ConversationParticipant.conversation_id == group_id
        )
    }
    member_ids = {m.user_id for m in test_db.query(GroupMember).filter(GroupMember.group_id == group_id)}
    assert participant_ids == member_ids == {users["alice"], users["bob"], users["carol"]}


def test_group_title_must_match_name_rule(test_db, users, ids):
    with pytest.raises(ValidationError):
        conversations_service.start_conversation(
            test_db,
            initiator_id=users["alice"],
            recipient_ids=[users["bob"]],
            title="no!",
            is_group=True,
            ids=ids,
        )


def test_unknown_participant_rolls_back_everything(test_db, users, ids):
    with pytest.raises(NotFoundError):
        conversations_service.start_conversation(
            test_db,
            initiator_id=users["alice"],
            recipient_ids=[users["bob"], "ghost0000000"],
            title="Party",
            is_group=True,
            ids=ids,
        )

    assert test_db.query(Conversation).count() == 0
    assert test_db.query(Group).count() == 0
    assert test_db.query(ConversationParticipant).count() == 0
    assert test_db.query(GroupMember).count() == 0


def test_user_conversations_show_peer_name_and_last_message(test_db, users, ids):
    direct = _start_direct(test_db, users, ids)
    group = conversations_service.start_conversation(
        test_db,
        initiator_id=users["alice"],
        recipient_ids=[users["carol"]],
        title="Hikers",
        is_group=True,
        ids=ids,
    )
    messages_service.add_message(
        test_db,
        conversation_id=direct["conversation_id"],
        sender_id=users["bob"],
        message_type="text",
        content="hi alice",
        ids=ids,
    )

    # Push the group's creation into the past so the direct chat is newest
    test_db.query(Conversation).filter(Conversation.id == group["conversation_id"]).update(
        {"created_at": datetime.utcnow() - timedelta(days=1)}
    )
    test_db.commit()

    result = conversations_service.get_user_conversations(test_db, user_id=users["alice"])

    assert result["total"] == 2
    first, second = result["conversations"]
    assert first["conversation_id"] == direct["conversation_id"]
    assert first["title"] == "bob"
    assert first["is_group"] is False
    assert first["last_message"]["content"] == "hi alice"
    assert first["last_message"]["type"] == "text"
    assert second["title"] == "Hikers"
    assert second["last_message"] is None

    # The display title is computed per reader
    bob_view = conversations_service.get_user_conversations(test_db, user_id=users["bob"])
    assert bob_view["conversations"][0]["title"] == "alice"
    stored = test_db.query(Conversation).filter(Conversation.id == direct["conversation_id"]).one()
    assert stored.title is None


def test_user_conversations_unknown_user(test_db):
    with pytest.raises(NotFoundError):
        conversations_service.get_user_conversations(test_db, user_id="nobody000000")


def test_conversation_details_require_participation(test_db, users, ids):
    direct = _start_direct(test_db, users, ids)

    with pytest.raises(NotFoundError):
        conversations_service.get_conversation_details(
            test_db, conversation_id=direct["conversation_id"], user_id=users["carol"]
        )
    with pytest.raises(NotFoundError):
        conversations_service.get_conversation_details(
            test_db, conversation_id="chat1", user_id=users["alice"]
        )


def test_conversation_details_include_messages_with_comments(test_db, users, ids):
    direct = _start_direct(test_db, users, ids)
    message = messages_service.add_message(
        test_db,
        conversation_id=direct["conversation_id"],
        sender_id=users["alice"],
        message_type="text",
        content="dinner at eight?",
        ids=ids,
    )
    comments_service.add_comment(
        test_db,
        message_id=message["message_id"],
        user_id=users["bob"],
        content="sounds good to me",
        ids=ids,
    )

    details = conversations_service.get_conversation_details(
        test_db, conversation_id=direct["conversation_id"], user_id=users["bob"]
    )

    assert details["title"] == "alice"
    assert {p["name"] for p in details["participants"]} == {"alice", "bob"}
    assert len(details["messages"]) == 1
    entry = details["messages"][0]
    assert entry["content"] == "dinner at eight?"
    assert entry["sender_name"] == "alice"
    assert [c["content"] for c in entry["comments"]] == ["sounds good to me"]
    assert entry["reactions"] == []


def test_get_messages_pages_newest_first(test_db, users, ids):
    direct = _start_direct(test_db, users, ids)
    conversation_id = direct["conversation_id"]
    base = datetime.utcnow() - timedelta(minutes=10)
    for index in range(5):
        test_db.add(
            Message(
                id=f"msg10000000{index}",
                conversation_id=conversation_id,
                sender_id=users["alice"],
                type="text",
                content=f"message {index}",
                content_type="text/plain",
                status="delivered",
                created_at=base + timedelta(minutes=index),
            )
        )
    test_db.commit()

    page = conversations_service.get_messages(
        test_db, conversation_id=conversation_id, user_id=users["bob"], limit=2
    )
    assert [m["content"] for m in page["messages"]] == ["message 4", "message 3"]
    assert page["has_more"] is True

    next_page = conversations_service.get_messages(
        test_db,
        conversation_id=conversation_id,
        user_id=users["bob"],
        limit=10,
        before=page["next_cursor"],
    )
    assert [m["content"] for m in next_page["messages"]] == ["message 2", "message 1", "message 0"]
    assert next_page["has_more"] is False
    assert next_page["next_cursor"] is None


def test_get_messages_rejects_outsiders(test_db, users, ids):
    direct = _start_direct(test_db, users, ids)
    with pytest.raises(NotFoundError):
        conversations_service.get_messages(
            test_db, conversation_id=direct["conversation_id"], user_id=users["dave"], limit=10
        )


def test_concurrent_direct_creation_returns_existing_conversation(test_db, users, ids, monkeypatch):
    first = _start_direct(test_db, users, ids)

    real_find = conversations_service._find_direct
    calls = []

    def find_missing_once(db, *, initiator_id, peer_id):
        calls.append(initiator_id)
        if len(calls) == 1:
            # Simulate the pair being created after this request looked for it
            return None
        return real_find(db, initiator_id=initiator_id, peer_id=peer_id)

    monkeypatch.setattr(conversations_service, "_find_direct", find_missing_once)

    second = _start_direct(test_db, users, ids, initiator="bob", recipient="alice")

    assert len(calls) == 2
    assert second["created"] is False
    assert second["conversation_id"] == first["conversation_id"]
    assert test_db.query(Conversation).count() == 1
    assert test_db.query(ConversationParticipant).count() == 2
