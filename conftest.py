import os
import random

# Must be set before core.db is imported
os.environ["TESTING"] = "true"

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from core.db import create_tables, drop_tables, enable_sqlite_foreign_keys, get_db
from core.ids import IdentifierGenerator
from models import User
from routers.dependencies import get_current_user, install_error_handlers

TEST_USERS = {
    "alice": "alice0000001",
    "bob": "bob000000002",
    "carol": "carol0000003",
    "dave": "dave00000004",
}

# Smallest payload the media store accepts is 100 bytes
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 256


@pytest.fixture(scope="session")
def test_engine():
    """Single in-memory SQLite database shared across threads"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    return engine


@pytest.fixture(scope="function")
def test_db(test_engine):
    """Create all tables before each test and drop them after"""
    create_tables(bind=test_engine)

    TestingSessionLocal = sessionmaker(bind=test_engine, autocommit=False, autoflush=False)
    db = TestingSessionLocal()

    try:
        db.add_all([User(id=user_id, name=name) for name, user_id in TEST_USERS.items()])
        db.commit()

        yield db
    finally:
        db.close()
        drop_tables(bind=test_engine)


@pytest.fixture
def users():
    return dict(TEST_USERS)


@pytest.fixture
def ids():
    """Identifier generator with a fixed seed"""
    return IdentifierGenerator(rng=random.Random(20240611))


@pytest.fixture
def png_bytes():
    return PNG_BYTES


@pytest.fixture
def make_client(test_db):
    """Build a TestClient for one router, authenticated as the given user id."""

    def _make(router, user_id=None):
        app = FastAPI()
        app.include_router(router)
        install_error_handlers(app)

        def override_get_db():
            yield test_db

        app.dependency_overrides[get_db] = override_get_db
        if user_id is not None:
            user = test_db.query(User).filter(User.id == user_id).first()
            app.dependency_overrides[get_current_user] = lambda: user
        return TestClient(app)

    return _make
