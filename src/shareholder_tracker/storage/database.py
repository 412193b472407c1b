"""Async engine and session handling for the snapshot store.

Analytics only ever read from the store, so reads go through
``DatabaseManager.read_session`` which never commits. Writes (schema
creation, seeding, ingestion tooling) use ``get_async_session``.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from shareholder_tracker.storage.models import Base

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

    from shareholder_tracker.config import DatabaseSettings

logger = logging.getLogger(__name__)

# Sync dialect prefix -> async driver prefix.
ASYNC_DRIVERS = {
    "postgresql://": "postgresql+asyncpg://",
    "sqlite://": "sqlite+aiosqlite://",
}


def normalize_database_url(database_url: str) -> str:
    """Map a sync dialect URL onto its async driver; other URLs pass through."""
    for sync_prefix, async_prefix in ASYNC_DRIVERS.items():
        if database_url.startswith(sync_prefix):
            logger.warning("Database URL uses sync dialect %r; using %r.", sync_prefix, async_prefix)
            return async_prefix + database_url[len(sync_prefix) :]
    return database_url


def is_sqlite_url(database_url: str) -> bool:
    return database_url.startswith("sqlite")


def _enable_sqlite_foreign_keys(dbapi_connection: Any, _record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_async_db_engine(database_url: str, **kwargs: Any) -> AsyncEngine:
    """Create the async engine for a snapshot store URL.

    SQLite connections get foreign key enforcement so snapshots cannot
    reference unknown holders.
    """
    url = normalize_database_url(database_url)
    engine = create_async_engine(url, **kwargs)
    if is_sqlite_url(url):
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def create_async_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, expire_on_commit=False)


async def init_async_db(engine: AsyncEngine) -> None:
    """Create the holders and position_snapshots tables if missing.

    Production databases are migrated with alembic; this is for development
    and tests.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Snapshot store schema initialized")


class DatabaseManager:
    """Owns the engine and hands out sessions for one snapshot store.

    Example:
        ```python
        db = DatabaseManager.from_settings(get_settings().database)
        async with db.read_session() as session:
            rows = await PositionSnapshotRepository(session).list_on_date(day)
        await db.dispose_async()
        ```
    """

    def __init__(
        self,
        database_url: str,
        *,
        pool_size: int = 5,
        max_overflow: int = 10,
        echo: bool = False,
    ) -> None:
        """Initialize database manager.

        Args:
            database_url: Snapshot store URL (PostgreSQL or SQLite).
            pool_size: Connection pool size (ignored for SQLite).
            max_overflow: Maximum overflow connections (ignored for SQLite).
            echo: Echo SQL statements for debugging.
        """
        self.database_url = database_url
        self._pool_size = pool_size
        self._max_overflow = max_overflow
        self._echo = echo

        self._async_engine: AsyncEngine | None = None
        self._async_session_factory: async_sessionmaker[AsyncSession] | None = None

    @classmethod
    def from_settings(cls, settings: DatabaseSettings, *, echo: bool = False) -> DatabaseManager:
        return cls(settings.url, echo=echo)

    def _get_async_engine(self) -> AsyncEngine:
        if self._async_engine is None:
            options: dict[str, Any] = {"echo": self._echo}
            if not is_sqlite_url(self.database_url):
                options.update(pool_size=self._pool_size, max_overflow=self._max_overflow)
            self._async_engine = create_async_db_engine(self.database_url, **options)
        return self._async_engine

    def _session(self) -> AsyncSession:
        if self._async_session_factory is None:
            self._async_session_factory = create_async_session_factory(self._get_async_engine())
        return self._async_session_factory()

    @asynccontextmanager
    async def get_async_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Session that commits on success and rolls back on error."""
        session = self._session()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    @asynccontextmanager
    async def read_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Session for analytics reads; it is always rolled back, never committed."""
        session = self._session()
        try:
            yield session
        finally:
            await session.rollback()
            await session.close()

    async def init_schema_async(self) -> None:
        await init_async_db(self._get_async_engine())

    async def dispose_async(self) -> None:
        """Dispose of all pooled connections."""
        if self._async_engine is not None:
            await self._async_engine.dispose()
            self._async_engine = None
            self._async_session_factory = None
        logger.debug("Snapshot store connections disposed")
