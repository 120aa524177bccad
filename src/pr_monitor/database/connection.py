"""Database connection management.

Provides the async SQLAlchemy engine over aiosqlite, session handling and
schema creation. Several monitor processes may share one database file, so
connections are opened with a busy timeout and writes are kept short.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ..models import Base
from .config import DatabaseConfig

logger = logging.getLogger(__name__)


class DatabaseConnectionManager:
    """Manages database connections and provides session handling."""

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine:
        """Get or create async database engine."""
        if self._engine is None:
            self._engine = self._create_engine()
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        """Get or create async session factory."""
        if self._session_factory is None:
            self._session_factory = async_sessionmaker(
                bind=self.engine,
                class_=AsyncSession,
                expire_on_commit=False,  # Keep objects usable after commit
            )
        return self._session_factory

    def _create_engine(self) -> AsyncEngine:
        """Create async SQLAlchemy engine."""
        db_path = self.config.database_path
        if db_path is not None:
            db_path.parent.mkdir(parents=True, exist_ok=True)

        engine = create_async_engine(
            self.config.get_sqlalchemy_url(),
            echo=self.config.echo_sql,
        )
        self._register_connection_events(engine)

        logger.debug(
            "Created database engine",
            extra={"database": str(db_path) if db_path else ":memory:"},
        )
        return engine

    def _register_connection_events(self, engine: AsyncEngine) -> None:
        """Apply SQLite pragmas to every new connection."""
        busy_timeout = self.config.busy_timeout

        @event.listens_for(engine.sync_engine, "connect")
        def on_connect(dbapi_connection: Any, connection_record: Any) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute(f"PRAGMA busy_timeout={int(busy_timeout)}")
            cursor.close()

    async def init_schema(self) -> None:
        """Create all tables and indexes that do not exist yet."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info(
            "Database schema initialized",
            extra={"tables": sorted(Base.metadata.tables)},
        )

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get database session with automatic commit and cleanup.

        Usage:
            async with connection_manager.get_session() as session:
                result = await session.execute(query)
        """
        session = self.session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def close(self) -> None:
        """Close database engine and clean up connections."""
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.debug("Database engine disposed")
