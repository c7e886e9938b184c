"""Async engine and session management.

The engine is built lazily from ``Settings.DATABASE_URL``.  Use
``get_session()`` for a unit of work: it commits on success and rolls
back on any exception.

SQLite (aiosqlite) needs two tweaks to behave like PostgreSQL here:
foreign keys are switched on, and the driver's own transaction handling
is replaced by explicit ``BEGIN`` so that SAVEPOINTs nest correctly.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from fluxcal.core.config import get_settings

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def configure_sqlite(engine: AsyncEngine) -> None:
    """Enable FK enforcement and SAVEPOINT support on a SQLite engine."""

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_conn, _record):  # noqa: ANN001, ANN202
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):  # noqa: ANN001, ANN202
        conn.exec_driver_sql("BEGIN")


def build_engine(url: str) -> AsyncEngine:
    if url.startswith("sqlite"):
        engine = create_async_engine(url, echo=False)
        configure_sqlite(engine)
        return engine
    return create_async_engine(url, echo=False, pool_pre_ping=True)


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Lazily create the engine and session factory."""
    global _engine, _session_factory  # noqa: PLW0603
    if _session_factory is None:
        _engine = build_engine(get_settings().DATABASE_URL)
        _session_factory = async_sessionmaker(_engine, expire_on_commit=False)
    return _session_factory


async def dispose_engine() -> None:
    """Close pooled connections (application shutdown)."""
    global _engine, _session_factory  # noqa: PLW0603
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None


@asynccontextmanager
async def get_session() -> AsyncIterator[AsyncSession]:
    """Yield a session; commit on success, rollback on error."""
    session = get_session_factory()()
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()
