"""Reactions and comments on messages.

Short content (up to REACTION_MAX_GRAPHEMES user-perceived characters) is a
reaction: one per user per message, replaced in place when it changes. Longer
content is a comment and is always appended.
"""

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from core.config import MESSAGE_MAX_LENGTH, REACTION_MAX_GRAPHEMES
from core.db import atomic
from core.errors import ConflictError, NotFoundError, UnauthorizedError, ValidationError
from core.ids import default_generator
from core.users import get_user_by_id
from utils.chat_helpers import interaction_payload, load_interactions
from utils.graphemes import is_reaction
from utils.message_sanitizer import sanitize_message

from . import repository as messages_repository

logger = logging.getLogger(__name__)


def _require_message_participant(db: Session, *, message_id: str, user_id: str):
    message = messages_repository.get_message(db, message_id=message_id)
    if not message:
        raise NotFoundError("Message not found")
    if not messages_repository.is_participant(
        db, conversation_id=message.conversation_id, user_id=user_id
    ):
        raise UnauthorizedError("User is not a participant in this conversation")
    return message


def add_comment(db: Session, *, message_id: str, user_id: str, content: str, ids=None):
    content = sanitize_message(content)
    if not content:
        raise ValidationError("Comment content cannot be empty")
    if len(content) > MESSAGE_MAX_LENGTH:
        raise ValidationError(f"Comment too long. Maximum length is {MESSAGE_MAX_LENGTH} characters")

    generator = ids or default_generator
    try:
        return _add_interaction(
            db, message_id=message_id, user_id=user_id, content=content, generator=generator
        )
    except ConflictError:
        if not is_reaction(content, REACTION_MAX_GRAPHEMES):
            raise
        # A concurrent request inserted this user's reaction first
        logger.info(f"Reaction race on message {message_id} for {user_id}, retrying as update")
        return _add_interaction(
            db, message_id=message_id, user_id=user_id, content=content, generator=generator
        )


def _add_interaction(db: Session, *, message_id: str, user_id: str, content: str, generator):
    replaced = False
    with atomic(db, operation="add comment"):
        _require_message_participant(db, message_id=message_id, user_id=user_id)
        now = datetime.utcnow()

        if is_reaction(content, REACTION_MAX_GRAPHEMES):
            kind = "reaction"
            row = messages_repository.get_reaction_for_user(
                db, message_id=message_id, user_id=user_id
            )
            if row:
                row.content = content
                row.created_at = now
                replaced = True
            else:
                row = messages_repository.create_reaction(
                    db,
                    reaction_id=generator.new_id(db, "interaction"),
                    message_id=message_id,
                    user_id=user_id,
                    content=content,
                    created_at=now,
                )
        else:
            kind = "comment"
            row = messages_repository.create_comment(
                db,
                comment_id=generator.new_id(db, "interaction"),
                message_id=message_id,
                user_id=user_id,
                content=content,
                created_at=now,
            )

        user = get_user_by_id(db, user_id=user_id)
        payload = interaction_payload(row, kind=kind, username=user.name if user else "")
        payload["replaced"] = replaced

    logger.info(
        f"{kind.capitalize()} {payload['id']} {'updated' if replaced else 'added'} "
        f"on message {message_id} by {user_id}"
    )
    return payload


def delete_comment(db: Session, *, message_id: str, comment_id: str, user_id: str):
    with atomic(db, operation="delete comment"):
        _require_message_participant(db, message_id=message_id, user_id=user_id)

        row, kind = messages_repository.get_interaction(
            db, message_id=message_id, interaction_id=comment_id
        )
        if not row:
            raise NotFoundError("Comment not found")
        if row.user_id != user_id:
            raise UnauthorizedError("Only the author can delete this comment")

        messages_repository.delete_row(db, row)

    logger.info(f"{kind.capitalize()} {comment_id} deleted from message {message_id} by {user_id}")
    return {"deleted": True, "id": comment_id, "kind": kind, "message_id": message_id}


def get_comments(db: Session, *, message_id: str, user_id: str):
    _require_message_participant(db, message_id=message_id, user_id=user_id)
    entry = load_interactions(db, [message_id]).get(message_id)
    if not entry:
        return {"message_id": message_id, "reactions": [], "comments": []}
    return {"message_id": message_id, "reactions": entry["reactions"], "comments": entry["comments"]}
