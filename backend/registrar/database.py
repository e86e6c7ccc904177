"""
Database engine construction for the relational storage backends.

Uses SQLAlchemy for ORM operations, with a synchronous engine for the
`sqlite` backend and an asyncio engine (aiosqlite driver) for
`sqlite_async`. Engines are created by the storage backend that owns them
and disposed on shutdown; there is no module-level engine.
"""

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""
    pass


def _engine_kwargs(database_url: str) -> dict:
    # SQLite does not support pool_size, max_overflow, or pool_pre_ping
    engine_kwargs = {"echo": False}
    if database_url.startswith("postgresql"):
        engine_kwargs.update({
            "pool_size": 10,
            "max_overflow": 20,
            "pool_pre_ping": True,
        })
    elif database_url.startswith("sqlite"):
        # Requests are served from a thread pool; connections cross threads
        engine_kwargs["connect_args"] = {"check_same_thread": False, "timeout": 15}
    return engine_kwargs


def _set_sqlite_pragma(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def make_engine(database_url: str) -> Engine:
    """Create a synchronous engine, enabling WAL mode for SQLite files."""
    engine = create_engine(database_url, **_engine_kwargs(database_url))
    if database_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_sqlite_pragma)
    return engine


def make_async_engine(database_url: str) -> AsyncEngine:
    """Create an asyncio engine. WAL mode is set on the underlying driver connection."""
    engine = create_async_engine(database_url, **_engine_kwargs(database_url))
    if database_url.startswith("sqlite"):
        event.listen(engine.sync_engine, "connect", _set_sqlite_pragma)
    return engine


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def make_async_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, autoflush=False, expire_on_commit=False)
