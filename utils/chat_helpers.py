"""
Helper functions for shaping chat rows into response dictionaries.
"""
from collections import defaultdict
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from core.users import get_users_map
from models import Comment, Reaction


def iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def interaction_payload(row, *, kind: str, username: str) -> Dict:
    return {
        "id": row.id,
        "kind": kind,
        "message_id": row.message_id,
        "user_id": row.user_id,
        "username": username,
        "content": row.content,
        "timestamp": iso(row.created_at),
    }


def load_interactions(db: Session, message_ids: Iterable[str]) -> Dict[str, Dict[str, List[Dict]]]:
    """
    Load reactions and comments for a batch of messages.

    Returns:
        {message_id: {"reactions": [...], "comments": [...]}}, each list oldest first.
    """
    message_ids = list(message_ids)
    grouped: Dict[str, Dict[str, List[Dict]]] = defaultdict(
        lambda: {"reactions": [], "comments": []}
    )
    if not message_ids:
        return grouped

    reactions = (
        db.query(Reaction)
        .filter(Reaction.message_id.in_(message_ids))
        .order_by(Reaction.created_at, Reaction.id)
        .all()
    )
    comments = (
        db.query(Comment)
        .filter(Comment.message_id.in_(message_ids))
        .order_by(Comment.created_at, Comment.id)
        .all()
    )
    users = get_users_map(db, user_ids=[r.user_id for r in reactions] + [c.user_id for c in comments])

    for reaction in reactions:
        user = users.get(reaction.user_id)
        grouped[reaction.message_id]["reactions"].append(
            interaction_payload(reaction, kind="reaction", username=user.name if user else "")
        )
    for comment in comments:
        user = users.get(comment.user_id)
        grouped[comment.message_id]["comments"].append(
            interaction_payload(comment, kind="comment", username=user.name if user else "")
        )
    return grouped


def message_payload(message, *, users: Dict[str, object], interactions: Optional[Dict] = None) -> Dict:
    sender = users.get(message.sender_id)
    payload = {
        "message_id": message.id,
        "conversation_id": message.conversation_id,
        "sender_id": message.sender_id,
        "sender_name": sender.name if sender else "",
        "type": message.type,
        "content": message.content,
        "content_type": message.content_type,
        "parent_message_id": message.parent_message_id,
        "status": message.status,
        "is_forwarded": bool(message.is_forwarded),
        "original_sender_id": message.original_sender_id,
        "original_timestamp": iso(message.original_timestamp),
        "timestamp": iso(message.created_at),
    }
    if interactions is not None:
        entry = interactions.get(message.id) or {"reactions": [], "comments": []}
        payload["reactions"] = entry["reactions"]
        payload["comments"] = entry["comments"]
    return payload
