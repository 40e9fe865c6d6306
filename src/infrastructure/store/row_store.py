# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Read-only adapter over the remote row store.

Each call opens its own short-lived session from the sessionmaker, so
independent calls may run concurrently (an AsyncSession cannot). Driver
and SQL errors surface as UpstreamError.
"""

import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.core.exceptions import UpstreamError
from src.infrastructure.store.query import RowQuery, compile_count, compile_query

logger = logging.getLogger(__name__)


class RowStore:
    """Filter-builder style reads against the row store.

    Attributes:
        _sessionmaker: Factory for short-lived async sessions.

    Example:
        >>> store = RowStore(get_sessionmaker())
        >>> rows = await store.fetch(RowQuery("colleges", order_by=(Order("code"),)))
        >>> total = await store.count(RowQuery("assessments", predicates=(...)))
    """

    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession]) -> None:
        """Initialize the row store.

        Args:
            sessionmaker: Async sessionmaker bound to the row store engine.
        """
        self._sessionmaker = sessionmaker

    async def fetch(self, query: RowQuery) -> list[dict[str, Any]]:
        """Return the matching rows as plain dicts.

        Raises:
            UpstreamError: If the store call fails.
        """
        stmt = compile_query(query)
        try:
            async with self._sessionmaker() as session:
                result = await session.execute(stmt)
                rows = [dict(row) for row in result.mappings().all()]
        except SQLAlchemyError as e:
            logger.error("Row store fetch failed on %s: %s", query.table, e)
            raise UpstreamError(f"Failed to read {query.table}", e) from e
        return rows

    async def count(self, query: RowQuery) -> int:
        """Return the exact number of matching rows without fetching them.

        Raises:
            UpstreamError: If the store call fails.
        """
        stmt = compile_count(query)
        try:
            async with self._sessionmaker() as session:
                result = await session.execute(stmt)
                total = result.scalar()
        except SQLAlchemyError as e:
            logger.error("Row store count failed on %s: %s", query.table, e)
            raise UpstreamError(f"Failed to count {query.table}", e) from e
        return total or 0
