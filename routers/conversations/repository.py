"""Conversations repository layer."""

from sqlalchemy import func
from sqlalchemy.orm import Session


def get_conversation(db: Session, *, conversation_id: str):
    from models import Conversation

    return db.query(Conversation).filter(Conversation.id == conversation_id).first()


def get_direct_conversation_by_key(db: Session, *, direct_key: str):
    from models import Conversation

    return (
        db.query(Conversation)
        .filter(Conversation.direct_key == direct_key, Conversation.is_group.is_(False))
        .first()
    )


def find_direct_conversation_between_users(db: Session, *, user_ids):
    """Fallback lookup for direct conversations stored without a pair key."""
    from models import Conversation, ConversationParticipant

    matching = (
        db.query(ConversationParticipant.conversation_id)
        .join(Conversation, Conversation.id == ConversationParticipant.conversation_id)
        .filter(
            Conversation.is_group.is_(False),
            ConversationParticipant.user_id.in_(list(user_ids)),
        )
        .group_by(ConversationParticipant.conversation_id)
        .having(func.count(ConversationParticipant.user_id) == len(user_ids))
        .subquery()
    )
    return (
        db.query(Conversation)
        .join(matching, matching.c.conversation_id == Conversation.id)
        .order_by(Conversation.created_at)
        .first()
    )


def create_conversation(
    db: Session,
    *,
    conversation_id: str,
    title,
    is_group: bool,
    direct_key,
    created_at,
):
    from models import Conversation

    conversation = Conversation(
        id=conversation_id,
        title=title,
        is_group=is_group,
        direct_key=direct_key,
        created_at=created_at,
        updated_at=created_at,
    )
    db.add(conversation)
    db.flush()
    return conversation


def create_group_mirror(db: Session, *, group_id: str, name: str):
    from models import Group

    group = Group(id=group_id, name=name)
    db.add(group)
    db.flush()
    return group


def add_participant(db: Session, *, conversation_id: str, user_id: str, joined_at):
    from models import ConversationParticipant

    participant = ConversationParticipant(
        conversation_id=conversation_id, user_id=user_id, joined_at=joined_at
    )
    db.add(participant)
    return participant


def add_group_member(db: Session, *, group_id: str, user_id: str):
    from models import GroupMember

    member = GroupMember(group_id=group_id, user_id=user_id)
    db.add(member)
    return member


def is_participant(db: Session, *, conversation_id: str, user_id: str) -> bool:
    from models import ConversationParticipant

    return (
        db.query(ConversationParticipant.user_id)
        .filter(
            ConversationParticipant.conversation_id == conversation_id,
            ConversationParticipant.user_id == user_id,
        )
        .first()
        is not None
    )


def list_participant_ids(db: Session, *, conversation_id: str):
    from models import ConversationParticipant

    rows = (
        db.query(ConversationParticipant.user_id)
        .filter(ConversationParticipant.conversation_id == conversation_id)
        .order_by(ConversationParticipant.joined_at, ConversationParticipant.user_id)
        .all()
    )
    return [row.user_id for row in rows]


def list_participants_for_conversations(db: Session, *, conversation_ids):
    from models import ConversationParticipant

    if not conversation_ids:
        return []
    return (
        db.query(ConversationParticipant)
        .filter(ConversationParticipant.conversation_id.in_(list(conversation_ids)))
        .all()
    )


def list_conversations_for_user(db: Session, *, user_id: str):
    from models import Conversation, ConversationParticipant

    return (
        db.query(Conversation)
        .join(ConversationParticipant, Conversation.id == ConversationParticipant.conversation_id)
        .filter(ConversationParticipant.user_id == user_id)
        .all()
    )


def list_last_messages(db: Session, *, conversation_ids):
    """Latest message per conversation, keyed by conversation id."""
    from models import Message

    if not conversation_ids:
        return {}

    latest = (
        db.query(
            Message.conversation_id.label("conversation_id"),
            func.max(Message.created_at).label("last_at"),
        )
        .filter(Message.conversation_id.in_(list(conversation_ids)))
        .group_by(Message.conversation_id)
        .subquery()
    )
    rows = (
        db.query(Message)
        .join(
            latest,
            (Message.conversation_id == latest.c.conversation_id)
            & (Message.created_at == latest.c.last_at),
        )
        .all()
    )

    result = {}
    for message in rows:
        current = result.get(message.conversation_id)
        if current is None or message.id > current.id:
            result[message.conversation_id] = message
    return result


def list_messages(db: Session, *, conversation_id: str):
    from models import Message

    return (
        db.query(Message)
        .filter(Message.conversation_id == conversation_id)
        .order_by(Message.created_at.desc(), Message.id.desc())
        .all()
    )


def list_messages_page(db: Session, *, conversation_id: str, limit: int, before=None):
    from models import Message

    q = db.query(Message).filter(Message.conversation_id == conversation_id)
    if before is not None:
        q = q.filter(
            (Message.created_at < before.created_at)
            | ((Message.created_at == before.created_at) & (Message.id < before.id))
        )
    return q.order_by(Message.created_at.desc(), Message.id.desc()).limit(limit).all()


def get_message_in_conversation(db: Session, *, conversation_id: str, message_id: str):
    from models import Message

    return (
        db.query(Message)
        .filter(Message.id == message_id, Message.conversation_id == conversation_id)
        .first()
    )
