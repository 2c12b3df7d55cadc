"""
Engine and session management for the CARF database.

``init_engine_from_url()`` is the single place connection settings are
applied; everything else asks for the session factory it built.

Invariants enforced:
    - PostgreSQL runs READ COMMITTED on a pre-pinged QueuePool.
    - In-memory SQLite shares one connection (StaticPool) so every session
      sees the same database.  Foreign keys are switched on for SQLite.
    - ``session_scope()`` commits on success, rolls back on any exception
      and always closes the session.

Failure modes:
    - RuntimeError when the engine is used before initialization.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from carf_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_NOT_INITIALIZED = "Engine not initialized. Call init_engine_from_url() first."

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def _engine_options(database_url: str, **pool: Any) -> dict[str, Any]:
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return dict(poolclass=QueuePool, isolation_level="READ COMMITTED", **pool)
    options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
    if url.database in (None, "", ":memory:"):
        options["poolclass"] = StaticPool
    return options


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 10,
    max_overflow: int = 5,
    pool_pre_ping: bool = True,
    pool_timeout: int = 30,
) -> Engine:
    """Create the engine and session factory, replacing any previous ones.

    Pool settings apply to server databases only.
    """
    global _engine, _session_factory

    if _engine is not None:
        _engine.dispose()

    _engine = create_engine(
        database_url,
        echo=echo,
        **_engine_options(
            database_url,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=pool_pre_ping,
            pool_timeout=pool_timeout,
        ),
    )
    if _engine.dialect.name == "sqlite":
        event.listen(_engine, "connect", _sqlite_foreign_keys_on)
    _session_factory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info("engine_initialized", extra={"dialect": _engine.dialect.name, "echo": echo})
    return _engine


def _sqlite_foreign_keys_on(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    if _session_factory is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _session_factory


@contextmanager
def session_scope(factory: sessionmaker[Session] | None = None) -> Iterator[Session]:
    """One transaction: commit on success, rollback and re-raise on error.

    Usage:
        with session_scope(factory) as session:
            RequestStore(session).save(...)
    """
    session = (factory or get_session_factory())()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables() -> None:
    """Create every table registered under ``carf_kernel.models``."""
    from carf_kernel.db.base import Base
    import carf_kernel.models  # noqa: F401

    Base.metadata.create_all(get_engine())


def reset_engine() -> None:
    """Dispose of the engine and forget the session factory (tests)."""
    global _engine, _session_factory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None
