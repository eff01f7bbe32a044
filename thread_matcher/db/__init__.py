"""Database package: engine, session factory, init_db(), session_scope()."""

import threading
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from thread_matcher.config import DATABASE_URL
from thread_matcher.db.base import Base

# Import all models so Base.metadata has all tables
from thread_matcher.db.models import AuditRecord, ThreadLinkRecord  # noqa: F401

_init_lock = threading.Lock()
_default_factory: sessionmaker | None = None


def create_db_engine(url: str = DATABASE_URL) -> Engine:
    """Create an engine usable from executor threads.

    In-memory SQLite gets a StaticPool so every session sees the same database.
    """
    if url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=False, **kwargs)
    return create_engine(url, echo=False, pool_pre_ping=True)


def init_db(engine: Engine) -> sessionmaker:
    """Create tables if missing and return a session factory bound to the engine."""
    Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


def get_session_factory() -> sessionmaker:
    """Session factory for DATABASE_URL, created once per process (CLI and API wiring)."""
    global _default_factory
    with _init_lock:
        if _default_factory is None:
            _default_factory = init_db(create_db_engine(DATABASE_URL))
        return _default_factory


@contextmanager
def session_scope(factory: sessionmaker) -> Generator[Session, None, None]:
    """Context manager yielding a session; commits on success, rolls back on error."""
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
