"""
Server inventory: Core database layer.

Provides the SQLAlchemy engine and session factory used by the database
storage backend. Nothing here runs at import time: the engine is only built
when the app is configured with storage_backend="database", so the memory
backend never touches a database.
"""

import logging

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from core.base import Base  # Single Base instance shared across all models

log = logging.getLogger("inventory.db")


def _is_sqlite(database_url: str) -> bool:
    return database_url.startswith("sqlite")


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """Build an engine for the given URL.

    SQLite gets check_same_thread=False (FastAPI runs sync routes in a
    threadpool), WAL + busy_timeout for file databases, and a StaticPool for
    ":memory:" so every session sees the same database.
    """
    kwargs = {"echo": echo, "pool_pre_ping": True}
    if _is_sqlite(database_url):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool

    engine = create_engine(database_url, **kwargs)

    if _is_sqlite(database_url):
        @event.listens_for(engine, "connect")
        def _sqlite_pragmas(dbapi_conn, _record):
            cur = dbapi_conn.cursor()
            cur.execute("PRAGMA busy_timeout=5000")
            if ":memory:" not in database_url:
                cur.execute("PRAGMA journal_mode=WAL")
            cur.close()

    return engine


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def init_schema(engine: Engine) -> None:
    """Create any missing tables. Safe to re-run; Alembic owns real migrations."""
    # Importing the models registers their tables on Base.metadata
    import modules.inventory.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    log.info(f"Schema ready ({len(Base.metadata.tables)} tables)")


def check_connection(engine: Engine) -> bool:
    """Return True if the database answers a trivial query."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        log.warning("Database connection check failed", exc_info=True)
        return False
