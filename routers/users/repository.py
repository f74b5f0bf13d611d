"""Users repository layer."""

from sqlalchemy.orm import Session

from models import User


def get_user_by_id(db: Session, *, user_id: str):
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_id_for_update(db: Session, *, user_id: str):
    return db.query(User).filter(User.id == user_id).with_for_update().first()


def get_user_by_name(db: Session, *, name: str):
    return db.query(User).filter(User.name == name).first()


def get_users_by_ids(db: Session, *, user_ids):
    if not user_ids:
        return []
    return db.query(User).filter(User.id.in_(list(user_ids))).all()


def get_users_by_names(db: Session, *, names):
    if not names:
        return []
    return db.query(User).filter(User.name.in_(list(names))).all()


def create_user(db: Session, *, user_id: str, name: str, created_at):
    user = User(id=user_id, name=name, created_at=created_at)
    db.add(user)
    return user


def search_users(db: Session, *, query: str, limit: int):
    q = db.query(User)
    if query:
        q = q.filter(User.name.contains(query, autoescape=True))
    return q.order_by(User.name).limit(limit).all()
