# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Row store connection management using SQLAlchemy async.

The engine and sessionmaker are process-level infrastructure created once
at startup. They carry no caller identity: request code never reaches
them directly, it receives a RowStore built for the authenticated request
(see src.domains.auth.context).

Uses SQLAlchemy 2.0 async API with asyncpg driver.

Example:
    from src.infrastructure.database.connection import (
        init_database,
        get_sessionmaker,
    )

    # Initialize at application startup
    await init_database(settings)

    # Build a per-request store
    store = RowStore(get_sessionmaker())
"""

from typing import TYPE_CHECKING, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from src.core.exceptions import UpstreamError

if TYPE_CHECKING:
    from src.core.config.settings import Settings

# Module-level state for the row store connection pool
_engine: Optional[AsyncEngine] = None
_sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None


class DatabaseError(UpstreamError):
    """Raised when the connection pool is missing or cannot be created."""


async def init_database(settings: "Settings") -> None:
    """Initialize the row store connection pool.

    This should be called once at application startup.

    Args:
        settings: Application settings containing database configuration.

    Raises:
        DatabaseError: If connection pool creation fails.
    """
    global _engine, _sessionmaker

    try:
        _engine = create_async_engine(
            settings.database.url,
            pool_size=settings.database.pool_size,
            max_overflow=settings.database.max_overflow,
            pool_pre_ping=True,
            pool_recycle=1800,
            echo=settings.database.echo,
        )

        _sessionmaker = async_sessionmaker(
            bind=_engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to initialize database connection", e) from e


async def close_database() -> None:
    """Close the row store connection pool.

    This should be called at application shutdown.
    """
    global _engine, _sessionmaker

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _sessionmaker = None


def get_engine() -> AsyncEngine:
    """Get the async engine.

    Raises:
        DatabaseError: If the database has not been initialized.
    """
    if _engine is None:
        raise DatabaseError("Database not initialized. Call init_database() first.")
    return _engine


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """Get the async sessionmaker used to build per-request row stores.

    Raises:
        DatabaseError: If the database has not been initialized.
    """
    if _sessionmaker is None:
        raise DatabaseError("Database not initialized. Call init_database() first.")
    return _sessionmaker


async def check_database_connection() -> bool:
    """Check if the row store is reachable.

    Returns:
        True if the database is reachable, False otherwise.
    """
    if _engine is None:
        return False

    try:
        async with _engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        return False
