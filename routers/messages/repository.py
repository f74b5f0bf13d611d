"""Messages repository layer."""

from sqlalchemy import func
from sqlalchemy.orm import Session


def get_conversation(db: Session, *, conversation_id: str):
    from models import Conversation

    return db.query(Conversation).filter(Conversation.id == conversation_id).first()


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


def count_participants(db: Session, *, conversation_id: str) -> int:
    from models import ConversationParticipant

    return (
        db.query(ConversationParticipant)
        .filter(ConversationParticipant.conversation_id == conversation_id)
        .count()
    )


def get_message(db: Session, *, message_id: str):
    from models import Message

    return db.query(Message).filter(Message.id == message_id).first()


def get_message_for_update(db: Session, *, message_id: str):
    from models import Message

    return db.query(Message).filter(Message.id == message_id).with_for_update().first()


def create_message(
    db: Session,
    *,
    message_id: str,
    conversation_id: str,
    sender_id: str,
    message_type: str,
    content: str,
    content_type: str,
    parent_message_id=None,
    is_forwarded: bool = False,
    original_sender_id=None,
    original_timestamp=None,
    created_at,
):
    from models import Message

    message = Message(
        id=message_id,
        conversation_id=conversation_id,
        sender_id=sender_id,
        type=message_type,
        content=content,
        content_type=content_type,
        parent_message_id=parent_message_id,
        status="delivered",
        is_forwarded=is_forwarded,
        original_sender_id=original_sender_id,
        original_timestamp=original_timestamp,
        created_at=created_at,
    )
    db.add(message)
    db.flush()
    return message


def delete_message_cascade(db: Session, *, message_id: str):
    from models import Comment, Message, MessageReadStatus, Reaction

    db.query(Reaction).filter(Reaction.message_id == message_id).delete(synchronize_session=False)
    db.query(Comment).filter(Comment.message_id == message_id).delete(synchronize_session=False)
    db.query(MessageReadStatus).filter(MessageReadStatus.message_id == message_id).delete(
        synchronize_session=False
    )
    db.query(Message).filter(Message.id == message_id).delete(synchronize_session=False)


# ---------------------------------------------------------------------------
# Read status
# ---------------------------------------------------------------------------


def get_read_status(db: Session, *, message_id: str, user_id: str):
    from models import MessageReadStatus

    return (
        db.query(MessageReadStatus)
        .filter(MessageReadStatus.message_id == message_id, MessageReadStatus.user_id == user_id)
        .first()
    )


def create_read_status(db: Session, *, message_id: str, user_id: str, read_at):
    from models import MessageReadStatus

    row = MessageReadStatus(message_id=message_id, user_id=user_id, status="read", read_at=read_at)
    db.add(row)
    db.flush()
    return row


def count_read_recipients(db: Session, *, message_id: str, conversation_id: str, sender_id: str):
    """
    Returns (recipients, read_by): current participants other than the sender,
    and how many of them have a read record for the message.
    """
    from models import ConversationParticipant, MessageReadStatus

    row = (
        db.query(
            func.count(ConversationParticipant.user_id),
            func.count(MessageReadStatus.user_id),
        )
        .select_from(ConversationParticipant)
        .outerjoin(
            MessageReadStatus,
            (MessageReadStatus.user_id == ConversationParticipant.user_id)
            & (MessageReadStatus.message_id == message_id),
        )
        .filter(
            ConversationParticipant.conversation_id == conversation_id,
            ConversationParticipant.user_id != sender_id,
        )
        .one()
    )
    return int(row[0] or 0), int(row[1] or 0)


# ---------------------------------------------------------------------------
# Reactions and comments
# ---------------------------------------------------------------------------


def get_reaction_for_user(db: Session, *, message_id: str, user_id: str):
    from models import Reaction

    return (
        db.query(Reaction)
        .filter(Reaction.message_id == message_id, Reaction.user_id == user_id)
        .with_for_update()
        .first()
    )


def create_reaction(db: Session, *, reaction_id: str, message_id: str, user_id: str, content: str, created_at):
    from models import Reaction

    reaction = Reaction(
        id=reaction_id,
        message_id=message_id,
        user_id=user_id,
        content=content,
        created_at=created_at,
    )
    db.add(reaction)
    db.flush()
    return reaction


def create_comment(db: Session, *, comment_id: str, message_id: str, user_id: str, content: str, created_at):
    from models import Comment

    comment = Comment(
        id=comment_id,
        message_id=message_id,
        user_id=user_id,
        content=content,
        created_at=created_at,
    )
    db.add(comment)
    db.flush()
    return comment


def get_interaction(db: Session, *, message_id: str, interaction_id: str):
    """Returns (row, kind) for a reaction or comment on the message, or (None, None)."""
    from models import Comment, Reaction

    reaction = (
        db.query(Reaction)
        .filter(Reaction.id == interaction_id, Reaction.message_id == message_id)
        .first()
    )
    if reaction:
        return reaction, "reaction"
    comment = (
        db.query(Comment)
        .filter(Comment.id == interaction_id, Comment.message_id == message_id)
        .first()
    )
    if comment:
        return comment, "comment"
    return None, None


def delete_row(db: Session, row):
    db.delete(row)
