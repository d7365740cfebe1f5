"""Async SQLAlchemy storage adapter."""
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from core.config import Settings
from models.base import Base

logger = logging.getLogger(__name__)


def _is_memory_sqlite(database_url: str) -> bool:
    return database_url.startswith("sqlite") and (
        database_url.endswith(":memory:") or database_url.rstrip("/").endswith(":")
    )


class Storage:
    """
    Transactional store shared by all requests of one application.

    Owns the engine and session factory. Services receive an instance at
    construction time and open one scoped transaction per operation.
    """

    def __init__(self, database_url: str, echo: bool = False, **engine_kwargs: Any) -> None:
        self.database_url = database_url
        self.is_sqlite = database_url.startswith("sqlite")

        if _is_memory_sqlite(database_url):
            # One shared connection, otherwise every checkout sees an empty database
            engine_kwargs.setdefault("poolclass", StaticPool)
            engine_kwargs.setdefault("connect_args", {"check_same_thread": False})
        elif not self.is_sqlite:
            engine_kwargs.setdefault("pool_pre_ping", True)

        self.engine: AsyncEngine = create_async_engine(database_url, echo=echo, **engine_kwargs)
        if self.is_sqlite:
            self._install_sqlite_hooks()

        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Storage":
        """Build a storage adapter from application settings."""
        kwargs: dict[str, Any] = {}
        if not settings.is_sqlite:
            kwargs["pool_size"] = settings.db_pool_size
            kwargs["max_overflow"] = settings.db_max_overflow
        return cls(settings.database_url, echo=settings.db_echo, **kwargs)

    def _install_sqlite_hooks(self) -> None:
        """
        Enable FK enforcement and take over BEGIN emission on SQLite.

        SQLite ignores ON DELETE CASCADE unless foreign_keys is on for the
        connection, and the driver's implicit transaction handling breaks
        SAVEPOINT, which tag creation relies on.
        """
        sync_engine = self.engine.sync_engine

        @event.listens_for(sync_engine, "connect")
        def _on_connect(dbapi_connection: Any, _connection_record: Any) -> None:
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(sync_engine, "begin")
        def _on_begin(conn: Any) -> None:
            conn.exec_driver_sql("BEGIN")

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[AsyncSession]:
        """
        Yield a session inside one transaction.

        Commits when the block exits normally; any exception rolls back every
        statement issued in the block and is re-raised.
        """
        async with self.session_factory() as session, session.begin():
            yield session

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession]:
        """Yield a plain session for read-only work."""
        async with self.session_factory() as session:
            yield session

    async def create_schema(self) -> None:
        """Create all tables that do not exist yet."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema ready")

    async def drop_schema(self) -> None:
        """Drop all tables."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            async with self.session() as session:
                await session.execute(text("SELECT 1"))
        except Exception:
            logger.exception("Database health check failed")
            return False
        return True

    async def dispose(self) -> None:
        """Close all pooled connections."""
        await self.engine.dispose()
