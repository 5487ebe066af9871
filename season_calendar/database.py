"""
Database engine for the document store

One SQLite file holds every calendar document. File databases run in WAL
mode so concurrent season writes from different sessions queue on the busy
timeout instead of blocking readers. ":memory:" is served from a single
shared connection that sessions take turns on, so all of them see the same
documents.
"""
import asyncio
import logging
from contextlib import AsyncExitStack, asynccontextmanager
from collections.abc import AsyncIterator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from season_calendar.config import settings
from season_calendar.models import Base

logger = logging.getLogger(__name__)

MEMORY_DATABASE = ":memory:"
BUSY_TIMEOUT_SECONDS = 30

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None
# set for ":memory:", where every session shares one connection
_shared_connection_lock: asyncio.Lock | None = None


def _build_engine(database_path: str) -> AsyncEngine:
    if database_path == MEMORY_DATABASE:
        return create_async_engine(
            "sqlite+aiosqlite://",
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )

    engine = create_async_engine(
        f"sqlite+aiosqlite:///{database_path}",
        pool_pre_ping=True,
        connect_args={"timeout": BUSY_TIMEOUT_SECONDS, "check_same_thread": False},
    )

    def configure_sqlite(dbapi_conn, _):
        """WAL journal, relaxed fsync"""
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode = WAL")
        cursor.execute("PRAGMA synchronous = NORMAL")
        cursor.close()

    event.listen(engine.sync_engine, "connect", configure_sqlite)
    return engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory created by init_db()"""
    if _session_factory is None:
        raise RuntimeError("Database not initialized. Call init_db() during startup.")
    return _session_factory


async def init_db(database_path: str | None = None) -> None:
    """
    Open the document database and create missing tables

    Calling it again replaces the previous engine.

    Args:
        database_path: SQLite file, or ":memory:"; defaults to settings.database_path
    """
    global _engine, _session_factory, _shared_connection_lock

    database_path = database_path or settings.database_path
    if _engine is not None:
        await close_db()

    logger.info(f"Opening document database at {database_path}")
    _engine = _build_engine(database_path)

    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    _session_factory = async_sessionmaker(_engine, expire_on_commit=False, autoflush=False)
    _shared_connection_lock = asyncio.Lock() if database_path == MEMORY_DATABASE else None
    logger.info("Document tables ready: %s", ", ".join(sorted(Base.metadata.tables)))


async def close_db() -> None:
    """Dispose the engine; a later init_db() opens a new one"""
    global _engine, _session_factory, _shared_connection_lock
    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    _session_factory = None
    _shared_connection_lock = None
    logger.info("Document database closed")


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """Session in a transaction that commits on exit and rolls back on error."""
    session_factory = get_session_factory()
    async with AsyncExitStack() as stack:
        if _shared_connection_lock is not None:
            await stack.enter_async_context(_shared_connection_lock)
        session = await stack.enter_async_context(session_factory())
        await stack.enter_async_context(session.begin())
        yield session
