"""Async SQLAlchemy engine and session factory.

PostgreSQL (asyncpg) in production, SQLite (aiosqlite) in tests.
"""

from __future__ import annotations

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from artisan_studio.db.tables import Base
from artisan_studio.logging import get_logger

logger = get_logger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create the async engine for a database URL."""
    if database_url.startswith("sqlite"):
        engine = create_async_engine(database_url, echo=echo)
        # SQLite only enforces ON DELETE CASCADE with this pragma
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    else:
        engine = create_async_engine(
            database_url,
            echo=echo,
            pool_size=10,
            max_overflow=10,
            pool_pre_ping=True,
        )
    logger.info("Created async engine", database=database_url.split("@")[-1])
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


async def create_tables(engine: AsyncEngine) -> None:
    """Create all tables that don't exist yet.

    Schema migrations are managed outside this service; this is for local
    development and tests.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
