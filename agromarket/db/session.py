# File: agromarket/db/session.py
"""
Database engine and session management for AgroMarket.

This module provides:
1. Engine creation for SQLite (development, tests) and PostgreSQL
2. Write-transaction locking that linearizes stock mutations per product row
3. The session factory and the FastAPI session dependency
4. Schema initialization

Locking model:
    PostgreSQL: write transactions take `SELECT ... FOR UPDATE` row locks on the
    products they touch, bounded by `SET LOCAL lock_timeout`.
    SQLite: row locks do not exist, so write transactions start with
    `BEGIN IMMEDIATE`, taking the database write lock up front; the driver busy
    timeout bounds the wait. Read transactions use a plain deferred `BEGIN`
    and, in WAL mode, never block on writers.

Usage:
    from agromarket.db.session import get_db

    def some_endpoint(db: Session = Depends(get_db)):
        ...
"""

import logging
import threading
from typing import Any, Dict, Generator, Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from agromarket.core.config import settings
from agromarket.db.models import Base

logger = logging.getLogger(__name__)

# Execution option marking a connection whose transaction will write stock
WRITE_LOCK_OPTION = "agromarket_write_lock"
WRITE_TRANSACTION_OPTIONS: Dict[str, Any] = {WRITE_LOCK_OPTION: True}


def _configure_sqlite(engine: Engine, lock_timeout: float, in_memory: bool) -> None:
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        # Hand transaction control to the "begin" listener below
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON;")
        cursor.execute(f"PRAGMA busy_timeout={int(lock_timeout * 1000)};")
        if not in_memory:
            cursor.execute("PRAGMA journal_mode=WAL;")
        cursor.close()

    @event.listens_for(engine, "begin")
    def do_begin(conn):
        if conn.get_execution_options().get(WRITE_LOCK_OPTION):
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")


def create_db_engine(
    database_url: Optional[str] = None,
    lock_timeout: Optional[float] = None,
    echo: Optional[bool] = None,
) -> Engine:
    """
    Create a SQLAlchemy engine configured for AgroMarket's locking model.

    Args:
        database_url: Connection URL (defaults to settings.DATABASE_URL)
        lock_timeout: Seconds a write may wait for a lock (defaults to settings)
        echo: Whether to log emitted SQL (defaults to settings.DEBUG)

    Returns:
        Configured Engine
    """
    url = make_url(database_url or settings.DATABASE_URL)
    lock_timeout = lock_timeout or settings.DB_LOCK_TIMEOUT_SECONDS
    echo = settings.DEBUG if echo is None else echo

    if url.get_backend_name() == "sqlite":
        in_memory = url.database in (None, "", ":memory:")
        logger.info(f"Creating SQLite engine for {url.database or ':memory:'}")
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": lock_timeout},
            echo=echo,
        )
        _configure_sqlite(engine, lock_timeout, in_memory)
    else:
        logger.info(f"Creating {url.get_backend_name()} engine for {url.render_as_string(hide_password=True)}")
        engine = create_engine(
            url,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            pool_pre_ping=True,
            echo=echo,
        )
    return engine


def create_session_factory(bind: Engine) -> sessionmaker:
    """Session factory whose objects stay readable after the write transaction commits."""
    return sessionmaker(bind=bind, autoflush=False, expire_on_commit=False)


def begin_write(session: Session, lock_timeout: Optional[float] = None) -> None:
    """
    Start the session's write transaction.

    Must be called before anything else touches the session in this
    transaction, so the connection is procured with the write-lock option.
    """
    lock_timeout = lock_timeout or settings.DB_LOCK_TIMEOUT_SECONDS
    connection = session.connection(execution_options=WRITE_TRANSACTION_OPTIONS)
    if connection.dialect.name == "postgresql":
        connection.execute(text(f"SET LOCAL lock_timeout = '{int(lock_timeout * 1000)}ms'"))


engine = create_db_engine()

# Create session factory
SessionLocal = create_session_factory(engine)


# -----------------------------------------------------------------------------
# FastAPI Dependency
# -----------------------------------------------------------------------------


def get_db() -> Generator[Session, None, None]:
    """
    Get a database session with proper resource management.

    Returns:
        SQLAlchemy Session for database operations
    """
    thread_id = threading.get_ident()
    logger.debug(f"Creating DB session for thread {thread_id}")
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
        logger.debug(f"Closed DB session for thread {thread_id}")


def init_db(reset: bool = False, bind: Optional[Engine] = None) -> None:
    """
    Initialize the database schema.

    Args:
        reset: Whether to drop and recreate every table
        bind: Engine to initialize (defaults to the module engine)
    """
    bind = bind or engine
    logger.info("Initializing database schema...")
    if reset:
        logger.warning("Dropping all tables before re-creating the schema")
        Base.metadata.drop_all(bind=bind)
    Base.metadata.create_all(bind=bind)
    logger.info("Database schema ready")
