"""
Database connection management for CommitScope.

Provides database session management, connection handling, and transaction support.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from sqlalchemy import Engine, create_engine, event, text
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker

from commitscope.config import settings

logger = logging.getLogger(__name__)


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create an engine for the commit store.

    SQLite connections get foreign keys enabled so that deleting a commit
    cascades to its file rows.
    """
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, echo=echo, pool_pre_ping=True)

    engine = create_engine(
        database_url,
        echo=echo,
        # Job execution runs store calls on worker threads
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):  # pragma: no cover - driver hook
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Build a session factory bound to an engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


# Create engine instance (singleton pattern)
engine = create_db_engine(settings.database_url)

# Create session factory
SessionLocal = create_session_factory(engine)


def get_db() -> Generator[Session, None, None]:
    """
    Dependency for FastAPI to get database sessions with automatic cleanup.

    Yields:
        Session: A SQLAlchemy session
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@contextmanager
def db_session(
    factory: sessionmaker[Session] = SessionLocal,
) -> Generator[Session, None, None]:
    """
    Context manager for database sessions with automatic cleanup.

    Yields:
        Session: A SQLAlchemy session

    Example:
        >>> with db_session() as db:
        >>>     commit = db.get(Commit, full_sha)
    """
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@contextmanager
def transaction(session: Session) -> Generator[Session, None, None]:
    """
    Run a block of writes as one transaction on an existing session.

    Commits on success and rolls back everything written inside the
    block on any exception, which is then re-raised.

    Example:
        >>> with transaction(session):
        >>>     session.merge(commit)
        >>>     session.merge(file_row)
    """
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise


def ensure_sqlite_directory(database_url: str) -> None:
    """Create the parent directory of a file-backed SQLite database."""
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).expanduser().parent.mkdir(parents=True, exist_ok=True)


def init_db(bind: Engine = engine) -> None:
    """
    Initialize the database.

    Creates the commit tables if they do not exist yet.
    """
    from commitscope.models.db import Base

    ensure_sqlite_directory(str(bind.url))
    Base.metadata.create_all(bind=bind)


def check_connection() -> bool:
    """
    Check if database connection is working.

    Returns:
        bool: True if connection successful, False otherwise
    """
    try:
        with db_session() as db:
            db.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning(f"Database connection failed: {e}")
        return False
