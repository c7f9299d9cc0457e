"""
Module: stage_kernel.db.engine
Responsibility: Owns the process-wide Engine and session factory the
    orchestrators and concurrency tests draw sessions from.
Architecture position: Kernel > DB.  Imports models only inside
    create_tables / drop_tables, to complete Base.metadata.

Invariants enforced:
    LOCKED_READ_MODIFY_WRITE -- PostgreSQL runs READ COMMITTED and every
        product read-modify-write takes SELECT ... FOR UPDATE.  SQLite has no
        row locks; it serializes writers per database, and pysqlite's own
        BEGIN handling is switched off so the audit SAVEPOINT works.

Failure modes:
    - RuntimeError from the getters before init_engine_from_url().
    - Pool timeout when every PostgreSQL connection is checked out.
"""

import atexit
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from stage_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None


def _install_sqlite_transaction_hooks(engine: Engine) -> None:
    """Let SQLAlchemy emit BEGIN itself so SAVEPOINT works on pysqlite."""

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
    pool_pre_ping: bool = True,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
) -> Engine:
    """
    Create the engine for ``database_url`` and replace any previous one.

    ``sqlite://`` (in-memory) shares a single connection across threads so
    every session sees the same schema; a file URL pools normally.  The
    pool settings apply to PostgreSQL only.
    """
    global _engine, _SessionFactory

    url = make_url(database_url)
    dialect = url.get_backend_name()

    if dialect == "sqlite":
        kwargs: dict = {"echo": echo, "connect_args": {"check_same_thread": False}}
        if url.database in (None, "", ":memory:"):
            # One shared connection, otherwise every checkout sees an empty db
            kwargs["poolclass"] = StaticPool
        _engine = create_engine(url, **kwargs)
        _install_sqlite_transaction_hooks(_engine)
    else:
        _engine = create_engine(
            url,
            echo=echo,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=pool_pre_ping,
            pool_timeout=pool_timeout,
            pool_recycle=pool_recycle,
            isolation_level="READ COMMITTED",
        )

    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={"dialect": dialect, "echo": echo},
    )

    return _engine


def _not_initialized() -> RuntimeError:
    return RuntimeError("Engine not initialized. Call init_engine_from_url() first.")


def get_engine() -> Engine:
    if _engine is None:
        raise _not_initialized()
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """Factory for per-thread sessions (the concurrency tests open one per worker)."""
    if _SessionFactory is None:
        raise _not_initialized()
    return _SessionFactory


def get_session() -> Session:
    return get_session_factory()()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """Commit on success, roll back and re-raise on error, always close.

    For setup code and scripts; the orchestrators manage their own
    transactions on the session they are given.
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
    """Create the product, inventory, shipment and audit tables if missing."""
    from stage_kernel.db.base import Base
    import stage_kernel.models  # noqa: F401  (populates Base.metadata)

    Base.metadata.create_all(get_engine())


def drop_tables() -> None:
    """Drop every table (test teardown)."""
    from stage_kernel.db.base import Base
    import stage_kernel.models  # noqa: F401

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine so the next init starts clean."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
        _engine = None

    _SessionFactory = None


def _atexit_dispose():
    """Dispose the engine on process exit to release all pooled connections."""
    if _engine is not None:
        _engine.dispose()


atexit.register(_atexit_dispose)

