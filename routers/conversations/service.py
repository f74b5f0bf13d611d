"""Conversations domain service layer."""

import logging
import re
from datetime import datetime

from sqlalchemy.orm import Session

from core.config import CONVERSATION_MESSAGES_PAGE_LIMIT, GROUP_NAME_PATTERN
from core.db import atomic
from core.errors import ConflictError, NotFoundError, ValidationError
from core.ids import default_generator
from core.users import get_user_by_id, get_users_map
from utils.chat_helpers import iso, load_interactions, message_payload

from . import repository as conversations_repository

logger = logging.getLogger(__name__)

_GROUP_NAME_RE = re.compile(GROUP_NAME_PATTERN)


def direct_key_for(user_a: str, user_b: str) -> str:
    low, high = sorted([user_a, user_b])
    return f"{low}:{high}"


def _dedupe(values):
    return list(dict.fromkeys(v for v in values if v))


def _summary(db: Session, conversation, *, created: bool):
    return {
        "conversation_id": conversation.id,
        "created": created,
        "is_group": bool(conversation.is_group),
        "title": conversation.title,
        "participants": conversations_repository.list_participant_ids(
            db, conversation_id=conversation.id
        ),
    }


def _find_direct(db: Session, *, initiator_id: str, peer_id: str):
    return conversations_repository.get_direct_conversation_by_key(
        db, direct_key=direct_key_for(initiator_id, peer_id)
    ) or conversations_repository.find_direct_conversation_between_users(
        db, user_ids=[initiator_id, peer_id]
    )


def start_conversation(
    db: Session,
    *,
    initiator_id: str,
    recipient_ids,
    title=None,
    is_group: bool = False,
    ids=None,
):
    """Create a conversation, or return the existing direct one for the pair."""
    recipients = _dedupe(recipient_ids or [])
    participant_ids = _dedupe([initiator_id] + recipients)
    direct_key = None

    if is_group:
        title = (title or "").strip()
        if not _GROUP_NAME_RE.match(title):
            raise ValidationError(
                "Group name must be 3-30 characters and contain only letters, numbers, spaces, underscores or hyphens"
            )
    else:
        others = [r for r in recipients if r != initiator_id]
        if len(others) != 1:
            raise ValidationError("A direct conversation needs exactly one other participant")
        peer_id = others[0]
        existing = _find_direct(db, initiator_id=initiator_id, peer_id=peer_id)
        if existing:
            return _summary(db, existing, created=False)
        direct_key = direct_key_for(initiator_id, peer_id)

    generator = ids or default_generator
    try:
        with atomic(db, operation="start conversation"):
            for user_id in participant_ids:
                if not get_user_by_id(db, user_id=user_id):
                    raise NotFoundError(f"User {user_id} not found")

            now = datetime.utcnow()
            conversation = conversations_repository.create_conversation(
                db,
                conversation_id=generator.new_id(db, "conversation"),
                title=title,
                is_group=is_group,
                direct_key=direct_key,
                created_at=now,
            )
            if is_group:
                conversations_repository.create_group_mirror(
                    db, group_id=conversation.id, name=title
                )
            for user_id in participant_ids:
                conversations_repository.add_participant(
                    db, conversation_id=conversation.id, user_id=user_id, joined_at=now
                )
                if is_group:
                    conversations_repository.add_group_member(
                        db, group_id=conversation.id, user_id=user_id
                    )
    except ConflictError:
        if is_group:
            raise
        # Another request created the same pair first
        existing = _find_direct(db, initiator_id=initiator_id, peer_id=peer_id)
        if not existing:
            raise
        logger.info(f"Direct conversation {existing.id} created concurrently, returning it")
        return _summary(db, existing, created=False)

    logger.info(
        f"Created {'group' if is_group else 'direct'} conversation {conversation.id} "
        f"with {len(participant_ids)} participants"
    )
    return {
        "conversation_id": conversation.id,
        "created": True,
        "is_group": bool(is_group),
        "title": title,
        "participants": participant_ids,
    }


def get_user_conversations(db: Session, *, user_id: str):
    """List the user's conversations ordered by last activity, newest first."""
    if not get_user_by_id(db, user_id=user_id):
        raise NotFoundError("User not found")

    conversations = conversations_repository.list_conversations_for_user(db, user_id=user_id)
    conversation_ids = [c.id for c in conversations]
    last_messages = conversations_repository.list_last_messages(
        db, conversation_ids=conversation_ids
    )

    # Direct conversations are shown under the other participant's name and photo
    direct_ids = [c.id for c in conversations if not c.is_group]
    peers = {}
    for link in conversations_repository.list_participants_for_conversations(
        db, conversation_ids=direct_ids
    ):
        if link.user_id != user_id:
            peers[link.conversation_id] = link.user_id
    peer_users = get_users_map(db, user_ids=peers.values())

    entries = []
    for conversation in conversations:
        title = conversation.title
        photo_id = conversation.photo_id
        if not conversation.is_group:
            peer = peer_users.get(peers.get(conversation.id))
            if peer:
                title = peer.name
                photo_id = peer.photo_id

        last = last_messages.get(conversation.id)
        last_activity = last.created_at if last else conversation.created_at
        entries.append(
            (
                last_activity,
                {
                    "conversation_id": conversation.id,
                    "title": title,
                    "photo_id": photo_id,
                    "is_group": bool(conversation.is_group),
                    "created_at": iso(conversation.created_at),
                    "last_message": {
                        "type": last.type,
                        "content": last.content,
                        "timestamp": iso(last.created_at),
                    }
                    if last
                    else None,
                },
            )
        )

    entries.sort(key=lambda item: (item[0], item[1]["conversation_id"]), reverse=True)
    result = [entry for _, entry in entries]
    return {"conversations": result, "total": len(result)}


def get_conversation_details(db: Session, *, conversation_id: str, user_id: str):
    conversation = conversations_repository.get_conversation(db, conversation_id=conversation_id)
    if not conversation or not conversations_repository.is_participant(
        db, conversation_id=conversation_id, user_id=user_id
    ):
        raise NotFoundError("Conversation not found")

    participant_ids = conversations_repository.list_participant_ids(
        db, conversation_id=conversation_id
    )
    messages = conversations_repository.list_messages(db, conversation_id=conversation_id)
    users = get_users_map(db, user_ids=participant_ids + [m.sender_id for m in messages])
    interactions = load_interactions(db, [m.id for m in messages])

    title = conversation.title
    photo_id = conversation.photo_id
    if not conversation.is_group:
        peer = next((users.get(p) for p in participant_ids if p != user_id), None)
        if peer:
            title = peer.name
            photo_id = peer.photo_id

    return {
        "conversation_id": conversation.id,
        "title": title,
        "photo_id": photo_id,
        "is_group": bool(conversation.is_group),
        "created_at": iso(conversation.created_at),
        "participants": [
            {
                "user_id": pid,
                "name": users[pid].name if pid in users else "",
                "photo_id": users[pid].photo_id if pid in users else None,
            }
            for pid in participant_ids
        ],
        "messages": [
            message_payload(m, users=users, interactions=interactions) for m in messages
        ],
    }


def get_messages(
    db: Session,
    *,
    conversation_id: str,
    user_id: str,
    limit: int = CONVERSATION_MESSAGES_PAGE_LIMIT,
    before=None,
):
    """Page through a conversation newest first; `before` is a message id cursor."""
    conversation = conversations_repository.get_conversation(db, conversation_id=conversation_id)
    if not conversation:
        raise NotFoundError("Conversation not found")
    if not conversations_repository.is_participant(
        db, conversation_id=conversation_id, user_id=user_id
    ):
        raise NotFoundError("Conversation not found")

    cursor = None
    if before:
        cursor = conversations_repository.get_message_in_conversation(
            db, conversation_id=conversation_id, message_id=before
        )
        if not cursor:
            raise ValidationError("Invalid pagination cursor")

    limit = max(1, min(int(limit), CONVERSATION_MESSAGES_PAGE_LIMIT))
    messages = conversations_repository.list_messages_page(
        db, conversation_id=conversation_id, limit=limit + 1, before=cursor
    )
    has_more = len(messages) > limit
    messages = messages[:limit]

    users = get_users_map(db, user_ids=[m.sender_id for m in messages])
    interactions = load_interactions(db, [m.id for m in messages])
    return {
        "conversation_id": conversation_id,
        "messages": [
            message_payload(m, users=users, interactions=interactions) for m in messages
        ],
        "has_more": has_more,
        "next_cursor": messages[-1].id if has_more and messages else None,
    }
