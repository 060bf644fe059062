"""
Database Configuration.

SQLAlchemy async engine and session management for the local store.

One Database is created per process and handed to the stores that need it;
nothing in the package reaches for a module-level engine.

Usage:
    database = Database("sqlite+aiosqlite:///data/notepad.db")
    await database.initialize()

    async with database.session() as session:
        ...

    await database.dispose()
"""

from pathlib import Path
from typing import Any

from sqlalchemy import event, inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from notepad.core.config import SQLITE_PREFIX
from notepad.core.exceptions import EntityCreationError
from notepad.core.logging import get_logger
from notepad.core.utils import fold_text
from notepad.models.base import Base

logger = get_logger(__name__)


FOLD_FUNCTION = "note_fold"


def is_memory_url(url: str) -> bool:
    """Check if the URL points at an in-memory SQLite database."""
    return url.startswith("sqlite") and ":memory:" in url


def _register_fold_function(dbapi_connection: Any, connection_record: Any) -> None:
    """Expose fold_text to SQL as note_fold(text) on every new SQLite connection."""
    dbapi_connection.create_function(FOLD_FUNCTION, 1, fold_text)


def _create_engine(url: str, echo: bool) -> AsyncEngine:
    """Create async SQLAlchemy engine."""
    if is_memory_url(url):
        # In-memory SQLite needs one shared connection across sessions
        engine = create_async_engine(
            url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        if url.startswith(SQLITE_PREFIX):
            Path(url[len(SQLITE_PREFIX):]).parent.mkdir(parents=True, exist_ok=True)
        engine = create_async_engine(url, echo=echo)
    if url.startswith("sqlite"):
        event.listen(engine.sync_engine, "connect", _register_fold_function)
    return engine


class Database:
    """
    The single persistence context for the process.

    Owns the engine and session factory. Sessions are short-lived and
    created per store operation; the engine is reused until dispose().
    """

    def __init__(self, url: str, echo: bool = False) -> None:
        self.url = url
        self._engine = _create_engine(url, echo)
        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.debug("Database engine created", extra={"url": url})

    @property
    def engine(self) -> AsyncEngine:
        """Get the database engine."""
        return self._engine

    def session(self) -> AsyncSession:
        """Open a new session. Use as an async context manager."""
        return self._session_factory()

    async def initialize(self) -> None:
        """
        Create the notes schema if needed and verify it exists.

        Raises:
            EntityCreationError: If the schema cannot be created or is missing
        """
        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
                tables = await conn.run_sync(
                    lambda sync_conn: inspect(sync_conn).get_table_names()
                )
        except SQLAlchemyError as e:
            logger.error("Schema creation failed", extra={"error": str(e)})
            raise EntityCreationError(f"Could not create note schema: {e}") from e

        missing = [name for name in Base.metadata.tables if name not in tables]
        if missing:
            raise EntityCreationError(f"Missing tables: {', '.join(missing)}")

        logger.info("Database initialized", extra={"tables": sorted(tables)})

    async def dispose(self) -> None:
        """Close all pooled connections."""
        await self._engine.dispose()
        logger.debug("Database engine disposed")
