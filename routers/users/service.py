"""Users domain service layer."""

import logging
import re
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.config import USER_SEARCH_LIMIT, USERNAME_PATTERN
from core.db import atomic
from core.errors import ConflictError, NotFoundError, ValidationError
from core.ids import default_generator
from core.media import store_media

from . import repository as users_repository

logger = logging.getLogger(__name__)

_USERNAME_RE = re.compile(USERNAME_PATTERN)


def _validate_username(name: str):
    if not name or not _USERNAME_RE.match(name):
        raise ValidationError(
            "Username must be 3-16 characters and contain only letters, numbers, underscores or hyphens"
        )


def _user_summary(user):
    return {
        "user_id": user.id,
        "name": user.name,
        "photo_id": user.photo_id,
    }


# ---------------------------------------------------------------------------
# Internal service API used by other domains via core.users
# ---------------------------------------------------------------------------


def get_user_by_id(db: Session, *, user_id: str):
    return users_repository.get_user_by_id(db, user_id=user_id)


def get_user_by_id_for_update(db: Session, *, user_id: str):
    return users_repository.get_user_by_id_for_update(db, user_id=user_id)


def get_user_by_name(db: Session, *, name: str):
    return users_repository.get_user_by_name(db, name=name)


def get_users_by_ids(db: Session, *, user_ids):
    return users_repository.get_users_by_ids(db, user_ids=user_ids)


def get_users_by_names(db: Session, *, names):
    return users_repository.get_users_by_names(db, names=names)


# ---------------------------------------------------------------------------
# Public operations
# ---------------------------------------------------------------------------


def login(db: Session, *, name: str, ids=None):
    """Return the id for `name`, creating the user on first login."""
    name = (name or "").strip()
    _validate_username(name)

    existing = users_repository.get_user_by_name(db, name=name)
    if existing:
        return {"identifier": existing.id, "name": existing.name, "created": False}

    generator = ids or default_generator
    try:
        user = users_repository.create_user(
            db,
            user_id=generator.new_id(db, "user"),
            name=name,
            created_at=datetime.utcnow(),
        )
        db.commit()
    except IntegrityError:
        # Lost a race with another login for the same name
        db.rollback()
        existing = users_repository.get_user_by_name(db, name=name)
        if not existing:
            raise
        return {"identifier": existing.id, "name": existing.name, "created": False}
    except Exception:
        db.rollback()
        raise

    logger.info(f"Created user {user.id} with name {name}")
    return {"identifier": user.id, "name": user.name, "created": True}


def update_username(db: Session, *, user_id: str, new_name: str):
    new_name = (new_name or "").strip()
    _validate_username(new_name)

    with atomic(db, operation="update username"):
        user = users_repository.get_user_by_id_for_update(db, user_id=user_id)
        if not user:
            raise NotFoundError("User not found")

        old_name = user.name
        if old_name == new_name:
            return {"user_id": user.id, "old_name": old_name, "new_name": new_name}

        taken = users_repository.get_user_by_name(db, name=new_name)
        if taken and taken.id != user.id:
            raise ConflictError("Username already taken")

        user.name = new_name

    logger.info(f"User {user_id} renamed from {old_name} to {new_name}")
    return {"user_id": user_id, "old_name": old_name, "new_name": new_name}


def search_users(db: Session, *, query: str = ""):
    users = users_repository.search_users(
        db, query=(query or "").strip(), limit=USER_SEARCH_LIMIT
    )
    return {"users": [_user_summary(u) for u in users], "total": len(users)}


def update_user_photo(db: Session, *, user_id: str, photo: bytes, mime_type: str, ids=None):
    with atomic(db, operation="update user photo"):
        user = users_repository.get_user_by_id_for_update(db, user_id=user_id)
        if not user:
            raise NotFoundError("User not found")

        old_photo_id = user.photo_id
        new_photo_id = store_media(db, data=photo, mime_type=mime_type, ids=ids)
        user.photo_id = new_photo_id

    logger.info(f"User {user_id} photo updated to {new_photo_id}")
    return {"user_id": user_id, "old_photo_id": old_photo_id, "new_photo_id": new_photo_id}
