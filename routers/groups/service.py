"""Groups domain service layer.

Membership is written to both the participant links and the group member
mirror. Reads trust the participant links and only log when the mirror
disagrees.
"""

import logging
import re
from datetime import datetime

from sqlalchemy.orm import Session

from core.config import GROUP_NAME_PATTERN
from core.db import atomic
from core.errors import ConflictError, NotFoundError, UnauthorizedError, ValidationError
from core.media import store_media
from core.users import get_user_by_id, get_user_by_name, get_users_map
from utils.chat_helpers import iso

from . import repository as groups_repository

logger = logging.getLogger(__name__)

_GROUP_NAME_RE = re.compile(GROUP_NAME_PATTERN)


def _validate_group_name(name: str):
    if not name or not _GROUP_NAME_RE.match(name):
        raise ValidationError(
            "Group name must be 3-30 characters and contain only letters, numbers, spaces, underscores or hyphens"
        )


def _require_group(db: Session, *, group_id: str, for_update: bool = False):
    if for_update:
        conversation = groups_repository.get_group_conversation_for_update(db, group_id=group_id)
    else:
        conversation = groups_repository.get_group_conversation(db, group_id=group_id)
    if not conversation:
        raise NotFoundError("Group not found")
    return conversation


def _group_name(db: Session, conversation) -> str:
    group = groups_repository.get_group(db, group_id=conversation.id)
    if group and group.name:
        return group.name
    return conversation.title or ""


def is_group_member(db: Session, *, group_id: str, user_id: str) -> bool:
    """Cross-check both membership tables; the participant link wins."""
    in_participants = (
        groups_repository.get_participant(db, group_id=group_id, user_id=user_id) is not None
    )
    in_members = groups_repository.get_member(db, group_id=group_id, user_id=user_id) is not None
    if in_participants != in_members:
        logger.warning(
            f"Membership divergence for user {user_id} in group {group_id}: "
            f"participants={in_participants} group_members={in_members}"
        )
    return in_participants


def _require_member(db: Session, *, group_id: str, user_id: str):
    if not is_group_member(db, group_id=group_id, user_id=user_id):
        raise UnauthorizedError("User is not a member of this group")


def add_members(db: Session, *, group_id: str, adder_id: str, usernames):
    """
    Add users to a group by username.

    Names that do not resolve or already belong to the group are reported in
    `failed_users`; the rest are added. One bad name never blocks the others.
    A name repeated within one request is handled once and the repeats are
    dropped without being reported.
    """
    added_users = []
    failed_users = []

    with atomic(db, operation="add group members"):
        conversation = _require_group(db, group_id=group_id, for_update=True)
        _require_member(db, group_id=group_id, user_id=adder_id)

        now = datetime.utcnow()
        for username in dict.fromkeys(u.strip() for u in (usernames or []) if u and u.strip()):
            user = get_user_by_name(db, name=username)
            if not user:
                logger.info(f"Cannot add {username} to group {group_id}: user not found")
                failed_users.append(username)
                continue
            if groups_repository.get_participant(db, group_id=group_id, user_id=user.id):
                logger.info(f"Cannot add {username} to group {group_id}: already a member")
                failed_users.append(username)
                continue

            groups_repository.add_membership(
                db, group_id=group_id, user_id=user.id, joined_at=now
            )
            db.flush()
            added_users.append({"username": user.name, "user_id": user.id})

        member_count = groups_repository.count_participants(db, group_id=group_id)
        group_name = _group_name(db, conversation)
        if added_users:
            conversation.updated_at = now

    logger.info(
        f"User {adder_id} added {len(added_users)} members to group {group_id} "
        f"({len(failed_users)} failed)"
    )
    return {
        "group_id": group_id,
        "group_name": group_name,
        "added_users": added_users,
        "failed_users": failed_users,
        "added_by": adder_id,
        "member_count": member_count,
        "timestamp": iso(now),
    }


def leave_group(db: Session, *, group_id: str, user_id: str):
    """Remove the user from the group. The last member leaving deletes the group."""
    with atomic(db, operation="leave group"):
        _require_group(db, group_id=group_id, for_update=True)
        _require_member(db, group_id=group_id, user_id=user_id)

        user = get_user_by_id(db, user_id=user_id)
        username = user.name if user else ""

        groups_repository.remove_membership(db, group_id=group_id, user_id=user_id)
        remaining = groups_repository.count_participants(db, group_id=group_id)
        is_group_deleted = remaining == 0
        if is_group_deleted:
            groups_repository.delete_group_cascade(db, group_id=group_id)

    if is_group_deleted:
        logger.info(f"Group {group_id} deleted after last member {user_id} left")
    else:
        logger.info(f"User {user_id} left group {group_id}, {remaining} members remain")
    return {
        "group_id": group_id,
        "user_id": user_id,
        "username": username,
        "is_group_deleted": is_group_deleted,
        "remaining_member_count": remaining,
    }


def set_group_name(db: Session, *, group_id: str, user_id: str, new_name: str):
    new_name = (new_name or "").strip()
    _validate_group_name(new_name)

    with atomic(db, operation="set group name"):
        conversation = _require_group(db, group_id=group_id, for_update=True)
        _require_member(db, group_id=group_id, user_id=user_id)

        old_name = _group_name(db, conversation)
        member_count = groups_repository.count_participants(db, group_id=group_id)
        if old_name == new_name:
            return {
                "group_id": group_id,
                "old_name": old_name,
                "new_name": new_name,
                "member_count": member_count,
            }

        if groups_repository.find_group_by_name(db, name=new_name, exclude_group_id=group_id):
            raise ConflictError("Group name already taken")

        group = groups_repository.get_group(db, group_id=group_id)
        if group:
            group.name = new_name
        else:
            logger.warning(f"Group {group_id} has no group record; updating conversation only")
        conversation.title = new_name
        conversation.updated_at = datetime.utcnow()

    logger.info(f"Group {group_id} renamed from {old_name} to {new_name} by {user_id}")
    return {
        "group_id": group_id,
        "old_name": old_name,
        "new_name": new_name,
        "member_count": member_count,
    }


def set_group_photo(
    db: Session, *, group_id: str, user_id: str, photo: bytes, mime_type: str, ids=None
):
    with atomic(db, operation="set group photo"):
        conversation = _require_group(db, group_id=group_id, for_update=True)
        _require_member(db, group_id=group_id, user_id=user_id)

        old_photo_id = conversation.photo_id
        new_photo_id = store_media(db, data=photo, mime_type=mime_type, ids=ids)

        group = groups_repository.get_group(db, group_id=group_id)
        if group:
            group.photo_id = new_photo_id
        conversation.photo_id = new_photo_id
        conversation.updated_at = datetime.utcnow()

    logger.info(f"Group {group_id} photo set to {new_photo_id} by {user_id}")
    return {"group_id": group_id, "old_photo_id": old_photo_id, "new_photo_id": new_photo_id}


def list_group_members(db: Session, *, group_id: str, user_id: str):
    conversation = _require_group(db, group_id=group_id)
    _require_member(db, group_id=group_id, user_id=user_id)

    participant_ids = groups_repository.list_participant_ids(db, group_id=group_id)
    mirror_ids = set(groups_repository.list_member_ids(db, group_id=group_id))
    if set(participant_ids) != mirror_ids:
        logger.warning(
            f"Membership divergence in group {group_id}: "
            f"missing_in_group_members={sorted(set(participant_ids) - mirror_ids)} "
            f"extra_in_group_members={sorted(mirror_ids - set(participant_ids))}"
        )

    users = get_users_map(db, user_ids=participant_ids)
    members = [
        {
            "user_id": pid,
            "name": users[pid].name if pid in users else "",
            "photo_id": users[pid].photo_id if pid in users else None,
        }
        for pid in participant_ids
    ]
    return {
        "group_id": group_id,
        "group_name": _group_name(db, conversation),
        "members": members,
        "member_count": len(members),
    }


def get_groups_for_user(db: Session, *, user_id: str):
    if not get_user_by_id(db, user_id=user_id):
        raise NotFoundError("User not found")

    groups = []
    for conversation, group in groups_repository.list_groups_for_user(db, user_id=user_id):
        groups.append(
            {
                "group_id": conversation.id,
                "group_name": group.name if group else (conversation.title or ""),
            }
        )
    return groups
