import pytest

from core.db import atomic
from core.errors import ConflictError, NotFoundError
from models import MediaFile, User


def test_atomic_commits_on_success(test_db):
    with atomic(test_db, operation="store media"):
        test_db.add(MediaFile(id="media1", file_data=b"x" * 200, mime_type="image/png"))

    test_db.rollback()
    assert test_db.query(MediaFile).count() == 1


def test_atomic_rolls_back_tagged_errors_unchanged(test_db):
    with pytest.raises(NotFoundError):
        with atomic(test_db, operation="store media"):
            test_db.add(MediaFile(id="media2", file_data=b"x" * 200, mime_type="image/png"))
            test_db.flush()
            raise NotFoundError("gone")

    assert test_db.query(MediaFile).count() == 0


def test_atomic_turns_integrity_errors_into_conflicts(test_db, users):
    with pytest.raises(ConflictError) as exc_info:
        with atomic(test_db, operation="create user"):
            test_db.add(User(id="another00001", name="alice"))
            test_db.flush()

    assert "create user" in exc_info.value.message
    assert test_db.query(User).filter(User.name == "alice").count() == 1
