import logging
import re
import ssl
import time
import urllib.parse
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from core.config import (
    DATABASE_URL as CONFIGURED_DATABASE_URL,
    DB_MAX_OVERFLOW,
    DB_POOL_RECYCLE_SECONDS,
    DB_POOL_SIZE,
    DB_POOL_TIMEOUT_SECONDS,
    SLOW_DB_QUERY_THRESHOLD_MS,
    TESTING,
)
from core.errors import ChatError, ConflictError, InternalError

logger = logging.getLogger(__name__)

DATABASE_URL = CONFIGURED_DATABASE_URL

if not DATABASE_URL:
    if TESTING:
        # In testing environment, use SQLite in-memory database as fallback
        DATABASE_URL = "sqlite:///:memory:"
        logger.warning("Using in-memory SQLite database for testing")
    else:
        raise ValueError("DATABASE_URL environment variable is not set")

ssl_mode = None

# Only apply PostgreSQL-specific modifications if we're actually using PostgreSQL
if not DATABASE_URL.startswith("sqlite"):
    # If using Heroku/Vercel, convert the postgres:// URL to postgresql://
    if DATABASE_URL.startswith("postgres://"):
        DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

    parsed = urllib.parse.urlparse(DATABASE_URL)
    query_params = urllib.parse.parse_qs(parsed.query)
    ssl_mode = query_params.get("sslmode", [None])[0]

    # Use pg8000 instead of psycopg2
    if DATABASE_URL.startswith("postgresql://"):
        pattern = r"postgresql://([^:]+):([^@]+)@([^:/]+):?(\d*)/?([^?]*)"
        match = re.match(pattern, DATABASE_URL)

        if match:
            username, password, host, port, dbname = match.groups()
            if not port:
                port = "5432"
            # pg8000 takes SSL through connect_args, not the URL
            DATABASE_URL = (
                f"postgresql+pg8000://{username}:{password}@{host}:{port}/{dbname}"
            )


def build_engine(database_url: str):
    if database_url.startswith("sqlite"):
        _engine = create_engine(
            database_url, echo=False, connect_args={"check_same_thread": False}
        )
        enable_sqlite_foreign_keys(_engine)
        return _engine

    connect_args = {}
    if ssl_mode == "disable" or TESTING:
        pass
    elif ssl_mode == "require" or not ssl_mode:
        ssl_context = ssl.create_default_context()
        ssl_context.check_hostname = False
        ssl_context.verify_mode = ssl.CERT_NONE
        connect_args["ssl_context"] = ssl_context

    return create_engine(
        database_url,
        pool_size=DB_POOL_SIZE,
        max_overflow=DB_MAX_OVERFLOW,
        pool_timeout=DB_POOL_TIMEOUT_SECONDS,
        pool_pre_ping=True,
        echo=False,
        pool_recycle=DB_POOL_RECYCLE_SECONDS,
        connect_args=connect_args,
    )


def enable_sqlite_foreign_keys(_engine):
    """SQLite ignores FOREIGN KEY clauses unless asked per connection."""

    @event.listens_for(_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def install_slow_query_logging(_engine, threshold_ms: float = SLOW_DB_QUERY_THRESHOLD_MS):
    if threshold_ms <= 0:
        return

    slow_logger = logging.getLogger("db.slow_query")

    @event.listens_for(_engine, "before_cursor_execute")
    def _before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        context._query_start_time = time.perf_counter()

    @event.listens_for(_engine, "after_cursor_execute")
    def _after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        start = getattr(context, "_query_start_time", None)
        if start is None:
            return
        elapsed_ms = (time.perf_counter() - start) * 1000.0
        if elapsed_ms < threshold_ms:
            return

        stmt = " ".join(str(statement).split())
        if len(stmt) > 500:
            stmt = stmt[:500] + "…"
        params_repr = repr(parameters)
        if len(params_repr) > 500:
            params_repr = params_repr[:500] + "…"

        slow_logger.warning(
            "SLOW_DB_QUERY | ms=%.1f | stmt=%s | params=%s",
            elapsed_ms,
            stmt,
            params_repr,
        )


engine = build_engine(DATABASE_URL)
install_slow_query_logging(engine)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Dependency to get database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context():
    """Context manager for database sessions"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session, *, operation: str):
    """Run the block as a single transaction on `db`.

    Commits when the block finishes and rolls back on any error. Tagged chat
    errors pass through unchanged; a uniqueness violation becomes a
    ConflictError and any other storage failure an InternalError.
    """
    try:
        yield db
        db.commit()
    except ChatError:
        db.rollback()
        raise
    except IntegrityError as exc:
        db.rollback()
        logger.warning(f"Conflict while trying to {operation}: {exc.orig}")
        raise ConflictError(f"Conflicting write while trying to {operation}") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(f"Error while trying to {operation}: {exc}")
        raise InternalError(f"Failed to {operation}") from exc
    except Exception:
        db.rollback()
        raise


def create_tables(bind=None):
    """Create all tables"""
    import models  # noqa: F401  registers the mapped classes

    Base.metadata.create_all(bind=bind or engine)


def drop_tables(bind=None):
    """Drop all tables"""
    import models  # noqa: F401

    Base.metadata.drop_all(bind=bind or engine)
