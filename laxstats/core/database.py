"""
Engine and session handling for the API and the load command.

The API gets one session per request through get_db(); the load command opens
one with session_scope(). Services receive the session they work with and
never reach for the engine themselves.
"""
from contextlib import contextmanager
from typing import Generator, Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool

from laxstats.core.config import settings

# Created on first use so importing the package never opens a connection
_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None


def get_engine(database_url: Optional[str] = None) -> Engine:
    """Engine for DATABASE_URL (or database_url), built once per process."""
    global _engine, _SessionLocal

    if _engine is None:
        url = database_url or settings.DATABASE_URL

        if url.startswith("sqlite"):
            # Local runs against a SQLite file; no pool tuning applies
            _engine = create_engine(url, connect_args={"check_same_thread": False}, echo=settings.SQL_ECHO)
        else:
            _engine = create_engine(
                url,
                poolclass=QueuePool,
                pool_size=settings.DB_POOL_SIZE,
                max_overflow=settings.DB_MAX_OVERFLOW,
                pool_pre_ping=True,
                echo=settings.SQL_ECHO
            )
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_engine)

    return _engine


def get_session_factory() -> sessionmaker:
    get_engine()
    return _SessionLocal


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding a request-scoped session."""
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope() -> Iterator[Session]:
    """
    Session for batch jobs (the load command).

    Loader and identity services commit per record, so this only
    guarantees the session is rolled back on failure and always closed.
    """
    db = get_session_factory()()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db():
    """Create any missing tables."""
    from laxstats.models.models import Base
    Base.metadata.create_all(bind=get_engine(), checkfirst=True)
