"""Messages domain service layer."""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from core.config import MESSAGE_MAX_LENGTH
from core.db import atomic
from core.errors import NotFoundError, UnauthorizedError, ValidationError
from core.ids import default_generator
from core.media import media_url, store_media
from core.users import get_users_map
from models import MESSAGE_TYPES
from utils.chat_helpers import load_interactions, message_payload
from utils.message_sanitizer import sanitize_message

from . import repository as messages_repository

logger = logging.getLogger(__name__)


def _require_conversation(db: Session, *, conversation_id: str):
    conversation = messages_repository.get_conversation(db, conversation_id=conversation_id)
    if not conversation:
        raise NotFoundError("Conversation not found")
    return conversation


def _require_participant(db: Session, *, conversation_id: str, user_id: str):
    if not messages_repository.is_participant(
        db, conversation_id=conversation_id, user_id=user_id
    ):
        raise UnauthorizedError("User is not a participant in this conversation")


def _check_parent(db: Session, *, conversation_id: str, parent_message_id: Optional[str]):
    if not parent_message_id:
        return
    parent = messages_repository.get_message(db, message_id=parent_message_id)
    if not parent:
        raise NotFoundError("Parent message not found")
    if parent.conversation_id != conversation_id:
        raise ValidationError("Parent message belongs to a different conversation")


def _insert_message(
    db: Session,
    *,
    conversation,
    sender_id: str,
    message_type: str,
    content: str,
    content_type: str,
    parent_message_id=None,
    is_forwarded: bool = False,
    original_sender_id=None,
    original_timestamp=None,
    generator,
):
    now = datetime.utcnow()
    message = messages_repository.create_message(
        db,
        message_id=generator.new_id(db, "message"),
        conversation_id=conversation.id,
        sender_id=sender_id,
        message_type=message_type,
        content=content,
        content_type=content_type,
        parent_message_id=parent_message_id or None,
        is_forwarded=is_forwarded,
        original_sender_id=original_sender_id,
        original_timestamp=original_timestamp,
        created_at=now,
    )
    conversation.updated_at = now
    return message


def _payload(db: Session, message):
    users = get_users_map(
        db, user_ids=[message.sender_id] + ([message.original_sender_id] if message.original_sender_id else [])
    )
    payload = message_payload(message, users=users)
    original = users.get(message.original_sender_id)
    payload["original_sender_name"] = original.name if original else None
    return payload


def add_message(
    db: Session,
    *,
    conversation_id: str,
    sender_id: str,
    message_type: str = "text",
    content: str,
    content_type: Optional[str] = None,
    parent_message_id: Optional[str] = None,
    ids=None,
):
    if message_type not in MESSAGE_TYPES:
        raise ValidationError(f"Unsupported message type: {message_type}")
    if message_type == "text":
        content = sanitize_message(content)
        content_type = content_type or "text/plain"
    if not content or not content.strip():
        raise ValidationError("Message content cannot be empty")
    if len(content) > MESSAGE_MAX_LENGTH:
        raise ValidationError(f"Message too long. Maximum length is {MESSAGE_MAX_LENGTH} characters")
    if not content_type:
        raise ValidationError("Content type is required")

    generator = ids or default_generator
    with atomic(db, operation="add message"):
        conversation = _require_conversation(db, conversation_id=conversation_id)
        _require_participant(db, conversation_id=conversation_id, user_id=sender_id)
        _check_parent(db, conversation_id=conversation_id, parent_message_id=parent_message_id)

        message = _insert_message(
            db,
            conversation=conversation,
            sender_id=sender_id,
            message_type=message_type,
            content=content,
            content_type=content_type,
            parent_message_id=parent_message_id,
            generator=generator,
        )
        payload = _payload(db, message)

    logger.info(f"Message {message.id} added to conversation {conversation_id} by {sender_id}")
    return payload


def add_photo_message(
    db: Session,
    *,
    conversation_id: str,
    sender_id: str,
    photo: bytes,
    mime_type: str,
    parent_message_id: Optional[str] = None,
    ids=None,
):
    """Store the image and a photo message pointing at it in one transaction."""
    generator = ids or default_generator
    with atomic(db, operation="add photo message"):
        conversation = _require_conversation(db, conversation_id=conversation_id)
        _require_participant(db, conversation_id=conversation_id, user_id=sender_id)
        _check_parent(db, conversation_id=conversation_id, parent_message_id=parent_message_id)

        media_id = store_media(db, data=photo, mime_type=mime_type, ids=generator)
        message = _insert_message(
            db,
            conversation=conversation,
            sender_id=sender_id,
            message_type="photo",
            content=media_url(media_id),
            content_type=mime_type,
            parent_message_id=parent_message_id,
            generator=generator,
        )
        payload = _payload(db, message)

    logger.info(f"Photo message {message.id} ({media_id}) added to conversation {conversation_id}")
    return payload


def forward_message(
    db: Session,
    *,
    original_message_id: str,
    target_conversation_id: str,
    forwarder_id: str,
    ids=None,
):
    """
    Copy a message into another conversation.

    The copy is a new message with its own id and timestamp; the source
    message's sender and creation time are kept as provenance.
    """
    generator = ids or default_generator
    with atomic(db, operation="forward message"):
        original = messages_repository.get_message(db, message_id=original_message_id)
        if not original:
            raise NotFoundError("Message not found")
        target = messages_repository.get_conversation(db, conversation_id=target_conversation_id)
        if not target:
            raise NotFoundError("Target conversation not found")

        if not messages_repository.is_participant(
            db, conversation_id=original.conversation_id, user_id=forwarder_id
        ):
            raise UnauthorizedError("User is not a participant in the source conversation")
        if not messages_repository.is_participant(
            db, conversation_id=target.id, user_id=forwarder_id
        ):
            raise UnauthorizedError("User is not a participant in the target conversation")

        message = _insert_message(
            db,
            conversation=target,
            sender_id=forwarder_id,
            message_type=original.type,
            content=original.content,
            content_type=original.content_type,
            is_forwarded=True,
            original_sender_id=original.sender_id,
            original_timestamp=original.created_at,
            generator=generator,
        )
        payload = _payload(db, message)

    logger.info(
        f"Message {original_message_id} forwarded to {target_conversation_id} as {message.id} by {forwarder_id}"
    )
    return payload


def delete_message(db: Session, *, message_id: str, requester_id: str):
    """Delete a message together with its reactions, comments and read records."""
    with atomic(db, operation="delete message"):
        message = messages_repository.get_message_for_update(db, message_id=message_id)
        if not message:
            raise NotFoundError("Message not found")
        if message.sender_id != requester_id:
            raise UnauthorizedError("Only the sender can delete a message")

        payload = _payload(db, message)
        messages_repository.delete_message_cascade(db, message_id=message_id)

    logger.info(f"Message {message_id} deleted by {requester_id}")
    return {"deleted": True, "message": payload}


def get_message(db: Session, *, message_id: str, user_id: str):
    message = messages_repository.get_message(db, message_id=message_id)
    if not message:
        raise NotFoundError("Message not found")
    _require_participant(db, conversation_id=message.conversation_id, user_id=user_id)

    users = get_users_map(db, user_ids=[message.sender_id])
    payload = message_payload(message, users=users, interactions=load_interactions(db, [message.id]))
    return payload
