"""
Module: ledger_kernel.db.engine
Responsibility: SQLAlchemy engine initialization, session factory management
    and the transactional scope used by the posting service.
Architecture position: Kernel > DB.  May import from db/base.py; create_tables
    imports models/ lazily so metadata is complete.

Invariants enforced:
    - session_scope() commits on success and rolls back on any exception,
      so the lines of one posting are persisted all-or-nothing.

Failure modes:
    - RuntimeError if get_engine/get_session is called before
      init_engine_from_url().
"""

import os
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ledger_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

DEFAULT_DATABASE_URL = "sqlite+pysqlite:///:memory:"
DATABASE_URL_ENV = "LEDGER_DATABASE_URL"

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None


def database_url_from_env() -> str:
    """Database URL from LEDGER_DATABASE_URL, defaulting to in-memory SQLite."""
    return os.environ.get(DATABASE_URL_ENV, DEFAULT_DATABASE_URL)


def init_engine_from_url(
    database_url: str | None = None,
    echo: bool = False,
    pool_pre_ping: bool = True,
) -> Engine:
    """
    Initialize the module-level engine and session factory.

    In-memory SQLite URLs get a StaticPool so every session sees the same
    database; other backends use SQLAlchemy's default pool.

    Returns:
        SQLAlchemy Engine instance.
    """
    global _engine, _SessionFactory

    url = make_url(database_url or database_url_from_env())
    kwargs: dict = {"echo": echo, "pool_pre_ping": pool_pre_ping}
    if url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:"):
        kwargs["poolclass"] = StaticPool
        kwargs["connect_args"] = {"check_same_thread": False}

    _engine = create_engine(url, **kwargs)
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={"dialect": url.get_backend_name(), "echo": echo},
    )
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine


def get_session() -> Session:
    if _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _SessionFactory()


def get_session_factory() -> sessionmaker[Session]:
    if _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _SessionFactory


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    Provide a transactional scope around a series of operations.

    Usage:
        with session_scope() as session:
            session.add(entity)
            # Commits on successful exit, rolls back on exception
    """
    session = get_session()
    logger.debug("transaction_started")
    try:
        yield session
        session.commit()
        logger.debug("transaction_committed")
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables() -> None:
    """Create every ledger table on the current engine."""
    from ledger_kernel.db.base import Base
    import ledger_kernel.models  # noqa: F401  registers tables

    Base.metadata.create_all(get_engine())


def drop_tables() -> None:
    """Drop all tables. Use with caution - primarily for testing."""
    from ledger_kernel.db.base import Base

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _SessionFactory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None
