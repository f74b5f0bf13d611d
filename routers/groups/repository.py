"""Groups repository layer."""

from sqlalchemy import select
from sqlalchemy.orm import Session


def get_group_conversation(db: Session, *, group_id: str):
    from models import Conversation

    return (
        db.query(Conversation)
        .filter(Conversation.id == group_id, Conversation.is_group.is_(True))
        .first()
    )


def get_group_conversation_for_update(db: Session, *, group_id: str):
    from models import Conversation

    return (
        db.query(Conversation)
        .filter(Conversation.id == group_id, Conversation.is_group.is_(True))
        .with_for_update()
        .first()
    )


def get_group(db: Session, *, group_id: str):
    from models import Group

    return db.query(Group).filter(Group.id == group_id).first()


def find_group_by_name(db: Session, *, name: str, exclude_group_id: str):
    from models import Group

    return (
        db.query(Group)
        .filter(Group.name == name, Group.id != exclude_group_id)
        .first()
    )


def list_participant_ids(db: Session, *, group_id: str):
    from models import ConversationParticipant

    rows = (
        db.query(ConversationParticipant.user_id)
        .filter(ConversationParticipant.conversation_id == group_id)
        .order_by(ConversationParticipant.joined_at, ConversationParticipant.user_id)
        .all()
    )
    return [row.user_id for row in rows]


def list_member_ids(db: Session, *, group_id: str):
    from models import GroupMember

    rows = db.query(GroupMember.user_id).filter(GroupMember.group_id == group_id).all()
    return [row.user_id for row in rows]


def get_participant(db: Session, *, group_id: str, user_id: str):
    from models import ConversationParticipant

    return (
        db.query(ConversationParticipant)
        .filter(
            ConversationParticipant.conversation_id == group_id,
            ConversationParticipant.user_id == user_id,
        )
        .first()
    )


def get_member(db: Session, *, group_id: str, user_id: str):
    from models import GroupMember

    return (
        db.query(GroupMember)
        .filter(GroupMember.group_id == group_id, GroupMember.user_id == user_id)
        .first()
    )


def count_participants(db: Session, *, group_id: str) -> int:
    from models import ConversationParticipant

    return (
        db.query(ConversationParticipant)
        .filter(ConversationParticipant.conversation_id == group_id)
        .count()
    )


def add_membership(db: Session, *, group_id: str, user_id: str, joined_at):
    from models import ConversationParticipant, GroupMember

    db.add(ConversationParticipant(conversation_id=group_id, user_id=user_id, joined_at=joined_at))
    db.add(GroupMember(group_id=group_id, user_id=user_id))


def remove_membership(db: Session, *, group_id: str, user_id: str):
    from models import ConversationParticipant, GroupMember

    db.query(ConversationParticipant).filter(
        ConversationParticipant.conversation_id == group_id,
        ConversationParticipant.user_id == user_id,
    ).delete(synchronize_session=False)
    db.query(GroupMember).filter(
        GroupMember.group_id == group_id,
        GroupMember.user_id == user_id,
    ).delete(synchronize_session=False)


def delete_group_cascade(db: Session, *, group_id: str):
    """Delete a group conversation and every row that hangs off it."""
    from models import (
        Comment,
        Conversation,
        ConversationParticipant,
        Group,
        GroupMember,
        Message,
        MessageReadStatus,
        Reaction,
    )

    message_ids = select(Message.id).where(Message.conversation_id == group_id)
    db.query(Reaction).filter(Reaction.message_id.in_(message_ids)).delete(
        synchronize_session=False
    )
    db.query(Comment).filter(Comment.message_id.in_(message_ids)).delete(
        synchronize_session=False
    )
    db.query(MessageReadStatus).filter(MessageReadStatus.message_id.in_(message_ids)).delete(
        synchronize_session=False
    )
    db.query(Message).filter(Message.conversation_id == group_id).delete(
        synchronize_session=False
    )
    db.query(GroupMember).filter(GroupMember.group_id == group_id).delete(
        synchronize_session=False
    )
    db.query(ConversationParticipant).filter(
        ConversationParticipant.conversation_id == group_id
    ).delete(synchronize_session=False)
    db.query(Group).filter(Group.id == group_id).delete(synchronize_session=False)
    db.query(Conversation).filter(Conversation.id == group_id).delete(
        synchronize_session=False
    )


def list_groups_for_user(db: Session, *, user_id: str):
    from models import Conversation, ConversationParticipant, Group

    return (
        db.query(Conversation, Group)
        .join(ConversationParticipant, Conversation.id == ConversationParticipant.conversation_id)
        .outerjoin(Group, Group.id == Conversation.id)
        .filter(
            ConversationParticipant.user_id == user_id,
            Conversation.is_group.is_(True),
        )
        .order_by(Conversation.updated_at.desc(), Conversation.id)
        .all()
    )
