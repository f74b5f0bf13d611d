"""User lookup facade.

Domains should not query the `User` model directly. Instead, call these helpers which
delegate to the Users domain internal service API.
"""

from typing import Dict

from sqlalchemy.orm import Session


def get_user_by_id(db: Session, *, user_id: str):
    from routers.users import service as users_service

    return users_service.get_user_by_id(db, user_id=user_id)


def get_user_by_id_for_update(db: Session, *, user_id: str):
    from routers.users import service as users_service

    return users_service.get_user_by_id_for_update(db, user_id=user_id)


def get_user_by_name(db: Session, *, name: str):
    from routers.users import service as users_service

    return users_service.get_user_by_name(db, name=name)


def get_users_by_ids(db: Session, *, user_ids):
    from routers.users import service as users_service

    return users_service.get_users_by_ids(db, user_ids=user_ids)


def get_users_by_names(db: Session, *, names):
    from routers.users import service as users_service

    return users_service.get_users_by_names(db, names=names)


def get_users_map(db: Session, *, user_ids) -> Dict[str, object]:
    return {u.id: u for u in get_users_by_ids(db, user_ids=set(user_ids))}


def get_username(db: Session, *, user_id: str) -> str:
    user = get_user_by_id(db, user_id=user_id)
    return user.name if user else ""
