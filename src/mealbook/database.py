"""Database configuration and session management."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import event
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    AsyncSessionTransaction,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.sql.dml import Insert

from mealbook.config import get_settings

settings = get_settings()


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


def _configure_sqlite_connection(dbapi_connection, connection_record) -> None:
    # Let SQLAlchemy emit BEGIN itself so SAVEPOINTs behave.
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _begin_sqlite_transaction(conn) -> None:
    conn.exec_driver_sql("BEGIN")


def build_engine(database_url: str, echo: bool = False, **kwargs) -> AsyncEngine:
    """Create an async engine; on SQLite, enforce foreign keys and real transactions."""
    engine = create_async_engine(database_url, echo=echo, **kwargs)
    if engine.dialect.name == "sqlite":
        event.listen(engine.sync_engine, "connect", _configure_sqlite_connection)
        event.listen(engine.sync_engine, "begin", _begin_sqlite_transaction)
    return engine


async_engine = build_engine(settings.database_url, echo=settings.is_development)
AsyncSessionLocal = async_sessionmaker(
    async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncIterator[AsyncSession]:
    """Dependency for FastAPI endpoints."""
    async with AsyncSessionLocal() as session:
        yield session


@asynccontextmanager
async def transaction(session: AsyncSession) -> AsyncIterator[AsyncSessionTransaction]:
    """
    Run a block all-or-nothing on the given session.

    Opens a transaction that commits on exit when none is active, or a
    SAVEPOINT inside the caller's transaction otherwise. In the nested case
    the caller still owns the final commit.
    """
    if session.in_transaction():
        async with session.begin_nested() as nested:
            yield nested
    else:
        async with session.begin() as outer:
            yield outer


_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def dialect_insert(session: AsyncSession, table) -> Insert:
    """Build an INSERT that supports ``on_conflict_do_nothing`` on the session's backend."""
    return _DIALECT_INSERTS[session.bind.dialect.name](table)
