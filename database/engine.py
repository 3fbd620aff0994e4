"""
Database Persistence Layer - Engine and Sessions.

============================================================
PURPOSE
============================================================
Owns the SQLAlchemy engine, the session factory and the
transaction helpers behind the verification request audit trail
(requests, votes, state transitions).

- Commits happen only at the end of a transaction_scope block
- Driver failures surface as DatabasePersistenceError
- SQLite is the default; DATABASE_URL selects anything else

Assessments are computed on demand and never stored here.

============================================================
"""

import os
import logging
from typing import Optional, Generator
from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session, declarative_base
from sqlalchemy.exc import SQLAlchemyError, OperationalError
from sqlalchemy.pool import StaticPool

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


# =============================================================
# ERRORS
# =============================================================

class DatabasePersistenceError(Exception):
    """An audit trail write or read failed."""


class DatabaseConnectionError(DatabasePersistenceError):
    """The configured database cannot be reached."""


class DatabaseInitializationError(DatabasePersistenceError):
    """The audit tables could not be created."""


# =============================================================
# ENGINE
# =============================================================

Base = declarative_base()

DEFAULT_DATABASE_URL = "sqlite:///./provenance_audit.db"

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def get_database_url() -> str:
    url = os.getenv("DATABASE_URL")
    if url:
        return url
    logger.warning(f"DATABASE_URL not set, falling back to {DEFAULT_DATABASE_URL}")
    return DEFAULT_DATABASE_URL


def _is_memory_sqlite(url: str) -> bool:
    return ":memory:" in url or url in ("sqlite://", "sqlite:///")


def create_database_engine(
    database_url: Optional[str] = None,
    pool_size: int = 5,
    max_overflow: int = 10,
    pool_recycle: int = 1800,
    echo: bool = False,
) -> Engine:
    """
    Build an engine for the audit database.

    An in-memory SQLite database is pinned to one shared connection
    so every session sees the same tables. Server databases get a
    pre-pinged connection pool sized by the keyword arguments.
    """
    url = database_url or get_database_url()
    # strip credentials before logging
    logger.info(f"Opening audit database {url.rsplit('@', 1)[-1]}")

    if url.startswith("sqlite"):
        options = {"connect_args": {"check_same_thread": False}}
        if _is_memory_sqlite(url):
            options["poolclass"] = StaticPool
        return create_engine(url, echo=echo, **options)

    return create_engine(
        url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_recycle=pool_recycle,
    )


def get_engine() -> Engine:
    """Process-wide engine built from DATABASE_URL on first use."""
    global _engine
    if _engine is None:
        _engine = create_database_engine()
    return _engine


def get_session_factory(engine: Optional[Engine] = None) -> sessionmaker:
    """
    Session factory bound to ``engine``.

    Without an engine the process-wide factory is returned.
    """
    global _session_factory

    if engine is not None:
        return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    if _session_factory is None:
        _session_factory = sessionmaker(bind=get_engine(), autoflush=False, expire_on_commit=False)
    return _session_factory


# =============================================================
# SESSIONS
# =============================================================

@contextmanager
def get_db_session(factory: Optional[sessionmaker] = None) -> Generator[Session, None, None]:
    """Read-side session. Nothing is committed; the session is rolled back on error."""
    session = (factory or get_session_factory())()
    try:
        yield session
    except Exception as e:
        logger.error(f"Audit read failed, rolling back: {e}")
        session.rollback()
        raise
    finally:
        session.close()


@contextmanager
def transaction_scope(factory: Optional[sessionmaker] = None) -> Generator[Session, None, None]:
    """
    Write-side session committed when the block exits cleanly.

    Usage:
        with transaction_scope(factory) as session:
            session.add(VerificationRequestRecord(...))

    SQLAlchemy failures roll back and become DatabasePersistenceError.
    Any other exception rolls back and propagates as is.
    """
    session = (factory or get_session_factory())()
    try:
        yield session
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Audit write rolled back: {e}")
        raise DatabasePersistenceError(f"Audit write failed: {e}") from e
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# =============================================================
# INITIALIZATION
# =============================================================

def verify_database_connection(engine: Optional[Engine] = None) -> bool:
    """Round-trip ``SELECT 1``; raises DatabaseConnectionError when unreachable."""
    engine = engine or get_engine()
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()
    except OperationalError as e:
        logger.error(f"Audit database unreachable: {e}")
        raise DatabaseConnectionError(f"Cannot reach audit database: {e}") from e

    logger.info("Audit database reachable")
    return True


def create_all_tables(engine: Optional[Engine] = None) -> None:
    """Create the request, vote and transition tables if missing."""
    engine = engine or get_engine()

    # registers the audit tables on Base.metadata
    import verification_requests.models  # noqa: F401

    try:
        Base.metadata.create_all(bind=engine)
    except SQLAlchemyError as e:
        logger.error(f"Audit table creation failed: {e}")
        raise DatabaseInitializationError(f"Cannot create audit tables: {e}") from e

    logger.info(f"Audit tables ready: {', '.join(sorted(Base.metadata.tables))}")


def initialize_database(engine: Optional[Engine] = None) -> Engine:
    engine = engine or get_engine()
    verify_database_connection(engine)
    create_all_tables(engine)
    return engine
