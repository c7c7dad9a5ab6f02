"""
SQLAlchemy engine and session management for the feed reader.
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

MEMORY_PATH = ":memory:"


def create_db_engine(db_path: str) -> Engine:
    """Create a SQLite engine usable from the sync worker threads.

    An in-memory database only exists on a single connection, so it is
    pinned with StaticPool.
    """
    connect_args = {"check_same_thread": False}
    if db_path == MEMORY_PATH:
        return create_engine(
            "sqlite://", connect_args=connect_args, poolclass=StaticPool
        )
    return create_engine(f"sqlite:///{db_path}", connect_args=connect_args)


def make_session_factory(engine: Engine) -> sessionmaker:
    # Detached dataclass conversion happens inside the session, but keep
    # attributes loaded after commit anyway
    return sessionmaker(bind=engine, expire_on_commit=False)


@contextmanager
def session_scope(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """Get a session context manager for database operations.

    Usage:
        with session_scope(factory) as session:
            session.add(obj)
            # commit happens automatically on successful exit
    """
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
