# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the row store adapter."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import SQLAlchemyError

from src.core.exceptions import UpstreamError
from src.infrastructure.store import Equals, RowQuery, RowStore


@pytest.fixture
def mock_session():
    """Create mock async session."""
    session = AsyncMock()
    session.execute = AsyncMock()
    return session


@pytest.fixture
def mock_sessionmaker(mock_session):
    """Create mock sessionmaker yielding the mock session."""
    sessionmaker = MagicMock()
    sessionmaker.return_value.__aenter__ = AsyncMock(return_value=mock_session)
    sessionmaker.return_value.__aexit__ = AsyncMock(return_value=False)
    return sessionmaker


@pytest.fixture
def store(mock_sessionmaker):
    """Create row store over the mock sessionmaker."""
    return RowStore(mock_sessionmaker)


class TestRowStoreFetch:
    """Tests for RowStore.fetch."""

    @pytest.mark.asyncio
    async def test_returns_rows_as_dicts(self, store, mock_session):
        """Test that result mappings are returned as dicts."""
        result = MagicMock()
        result.mappings.return_value.all.return_value = [
            {"id": "c1", "name": "Engineering"},
            {"id": "c2", "name": "Science"},
        ]
        mock_session.execute.return_value = result

        rows = await store.fetch(RowQuery("colleges", columns=("id", "name")))

        assert rows == [
            {"id": "c1", "name": "Engineering"},
            {"id": "c2", "name": "Science"},
        ]
        mock_session.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_opens_session_per_call(self, store, mock_session, mock_sessionmaker):
        """Test that every call uses its own session."""
        result = MagicMock()
        result.mappings.return_value.all.return_value = []
        mock_session.execute.return_value = result

        await store.fetch(RowQuery("colleges"))
        await store.fetch(RowQuery("majors"))

        assert mock_sessionmaker.call_count == 2

    @pytest.mark.asyncio
    async def test_store_failure_raises_upstream_error(self, store, mock_session):
        """Test that SQL errors surface as UpstreamError."""
        mock_session.execute.side_effect = SQLAlchemyError("connection refused")

        with pytest.raises(UpstreamError) as exc_info:
            await store.fetch(RowQuery("profiles", predicates=(Equals("role", "student"),)))

        assert "profiles" in exc_info.value.message
        assert isinstance(exc_info.value.original_error, SQLAlchemyError)

    @pytest.mark.asyncio
    async def test_invalid_query_is_not_sent(self, store, mock_session):
        """Test that unknown columns fail before any store call."""
        with pytest.raises(ValueError):
            await store.fetch(RowQuery("profiles", columns=("nope",)))

        mock_session.execute.assert_not_awaited()


class TestRowStoreCount:
    """Tests for RowStore.count."""

    @pytest.mark.asyncio
    async def test_returns_scalar(self, store, mock_session):
        """Test exact count."""
        result = MagicMock()
        result.scalar.return_value = 42
        mock_session.execute.return_value = result

        total = await store.count(RowQuery("assessments"))

        assert total == 42

    @pytest.mark.asyncio
    async def test_null_count_is_zero(self, store, mock_session):
        """Test that a missing scalar counts as zero."""
        result = MagicMock()
        result.scalar.return_value = None
        mock_session.execute.return_value = result

        assert await store.count(RowQuery("assessments")) == 0

    @pytest.mark.asyncio
    async def test_store_failure_raises_upstream_error(self, store, mock_session):
        """Test that count failures surface as UpstreamError."""
        mock_session.execute.side_effect = SQLAlchemyError("timeout")

        with pytest.raises(UpstreamError):
            await store.count(RowQuery("assessments"))
