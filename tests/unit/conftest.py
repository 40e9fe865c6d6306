# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit test fixtures: an in-memory row store and access contexts.

FakeRowStore evaluates the store predicates over plain dict rows. Every
query is also compiled against the real table definitions, so unknown
tables or columns fail the same way they would against PostgreSQL.
"""

import asyncio
import re
from collections import Counter
from collections.abc import Callable, Iterable, Mapping
from typing import Any

import pytest

from src.core.config import Settings
from src.core.exceptions import UpstreamError
from src.domains.auth.context import AccessContext, CurrentUser
from src.infrastructure.store import (
    AnyOf,
    Equals,
    ILike,
    In,
    Predicate,
    Range,
    RowQuery,
    compile_count,
    compile_query,
)


def like_to_regex(pattern: str) -> re.Pattern[str]:
    """Translate an ILIKE pattern with backslash escapes to a regex."""
    parts = []
    escaped = False
    for char in pattern:
        if escaped:
            parts.append(re.escape(char))
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == "%":
            parts.append(".*")
        elif char == "_":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return re.compile("".join(parts), re.IGNORECASE | re.DOTALL)


def matches(row: Mapping[str, Any], predicate: Predicate) -> bool:
    """Evaluate one predicate against a row."""
    if isinstance(predicate, Equals):
        return row.get(predicate.column) == predicate.value
    if isinstance(predicate, In):
        return row.get(predicate.column) in predicate.values
    if isinstance(predicate, Range):
        value = row.get(predicate.column)
        if value is None:
            return False
        if predicate.lower is not None and value < predicate.lower:
            return False
        if predicate.upper is not None and value > predicate.upper:
            return False
        return True
    if isinstance(predicate, ILike):
        value = row.get(predicate.column)
        return value is not None and like_to_regex(predicate.pattern).fullmatch(str(value)) is not None
    if isinstance(predicate, AnyOf):
        return any(matches(row, p) for p in predicate.predicates)
    raise TypeError(f"Unsupported predicate: {predicate!r}")


class FakeRowStore:
    """In-memory stand-in for RowStore.

    Attributes:
        tables: Rows per table name.
        calls: Every (operation, query) received, in order.
        fail_on: Table names whose reads raise UpstreamError.
        delays: Seconds each read of a table waits before answering.
        finished: Tables of reads that completed, in completion order.
        peak_in_flight: Highest number of concurrent reads per table.
    """

    def __init__(
        self,
        tables: Mapping[str, Iterable[Mapping[str, Any]]] | None = None,
        fail_on: Iterable[str] = (),
        delays: Mapping[str, float] | None = None,
    ) -> None:
        self.tables = {name: [dict(r) for r in rows] for name, rows in (tables or {}).items()}
        self.calls: list[tuple[str, RowQuery]] = []
        self.fail_on = set(fail_on)
        self.delays = dict(delays or {})
        self.finished: list[str] = []
        self.peak_in_flight: Counter[str] = Counter()
        self._in_flight: Counter[str] = Counter()

    async def _select(self, query: RowQuery) -> list[dict[str, Any]]:
        self._in_flight[query.table] += 1
        self.peak_in_flight[query.table] = max(
            self.peak_in_flight[query.table], self._in_flight[query.table]
        )
        try:
            if query.table in self.delays:
                await asyncio.sleep(self.delays[query.table])
            if query.table in self.fail_on:
                raise UpstreamError(f"Failed to read {query.table}", RuntimeError("connection reset"))
            rows = [
                row
                for row in self.tables.get(query.table, [])
                if all(matches(row, p) for p in query.predicates)
            ]
        finally:
            self._in_flight[query.table] -= 1
        self.finished.append(query.table)
        return rows

    async def fetch(self, query: RowQuery) -> list[dict[str, Any]]:
        compile_query(query)
        self.calls.append(("fetch", query))
        rows = await self._select(query)

        for order in reversed(query.order_by):
            present = [r for r in rows if r.get(order.column) is not None]
            missing = [r for r in rows if r.get(order.column) is None]
            present.sort(key=lambda r: r[order.column], reverse=order.descending)
            rows = present + missing

        start = query.offset or 0
        end = start + query.limit if query.limit is not None else None
        rows = rows[start:end]

        if query.columns:
            return [{c: row.get(c) for c in query.columns} for row in rows]
        return [dict(row) for row in rows]

    async def count(self, query: RowQuery) -> int:
        compile_count(query)
        self.calls.append(("count", query))
        return len(await self._select(query))

    def calls_on(self, table: str) -> list[RowQuery]:
        """Queries received for one table."""
        return [q for _, q in self.calls if q.table == table]


# =============================================================================
# Sample Data
# =============================================================================


def sample_tables() -> dict[str, list[dict[str, Any]]]:
    """Two colleges, three majors, four classes, five students, assessments."""
    return {
        "colleges": [
            {"id": "c2", "code": "02", "name": "College of Science", "description": None},
            {"id": "c1", "code": "01", "name": "College of Engineering", "description": None},
        ],
        "majors": [
            {"id": "m2", "code": "02", "name": "Electronics", "college_id": "c1"},
            {"id": "m1", "code": "01", "name": "Computer Science", "college_id": "c1"},
            {"id": "m3", "code": "01", "name": "Mathematics", "college_id": "c2"},
        ],
        "classes": [
            {"id": "k2", "name": "CS 2023-2", "class_number": 2, "major_id": "m1", "enrollment_year": 2023},
            {"id": "k1", "name": "CS 2023-1", "class_number": 1, "major_id": "m1", "enrollment_year": 2023},
            {"id": "k3", "name": "EE 2022-1", "class_number": 1, "major_id": "m2", "enrollment_year": 2022},
            {"id": "k4", "name": "Math 2024-1", "class_number": 1, "major_id": "m3", "enrollment_year": 2024},
        ],
        "profiles": [
            _student("s1", "Alice Zhang", "202301011001", "c1", "m1", "k1", "2024-09-01T08:00:00"),
            _student("s2", "Bob Li", "202301011002", "c1", "m1", "k1", "2024-09-02T08:00:00"),
            _student("s3", "Carol Wang", "202301012001", "c1", "m1", "k2", "2024-09-03T08:00:00"),
            _student("s4", "Dan Liu", "202201021001", "c1", "m2", "k3", "2024-09-04T08:00:00"),
            _student("s5", "Eve Chen", "202402011001", "c2", "m3", "k4", "2024-09-05T08:00:00"),
            {"id": "t1", "role": "teacher", "full_name": "Teacher One", "email": "t1@example.edu"},
            {"id": "a1", "role": "admin", "full_name": "Admin", "email": "admin@example.edu"},
        ],
        "teacher_permissions": [],
        "assessments": [
            _assessment("as1", "s1", "completed", {"total_score": 80}, "2024-10-01T08:00:00"),
            _assessment("as2", "s1", "completed", {"total_score": None, "final_score": 60}, "2024-10-02T08:00:00"),
            _assessment("as3", "s2", "in_progress", None, "2024-10-03T08:00:00"),
            _assessment("as4", "s3", "completed", {"total_score": 90}, "2024-10-04T08:00:00"),
            _assessment("as5", "s4", "completed", {"total_score": 70}, "2024-10-05T08:00:00"),
            _assessment("as6", "s5", "abandoned", None, "2024-10-06T08:00:00"),
        ],
    }


def _student(id_, name, number, college_id, major_id, class_id, created_at):
    return {
        "id": id_,
        "role": "student",
        "email": f"{id_}@example.edu",
        "full_name": name,
        "student_id": number,
        "college_id": college_id,
        "major_id": major_id,
        "class_id": class_id,
        "enrollment_year": int(number[:4]),
        "created_at": created_at,
    }


def _assessment(id_, user_id, status, raw_scores, created_at):
    return {
        "id": id_,
        "user_id": user_id,
        "scale_id": "scale-1",
        "status": status,
        "raw_scores": raw_scores,
        "started_at": None,
        "completed_at": None,
        "created_at": created_at,
    }


def grant(id_: str, teacher_id: str, level: str, target: str | None = None) -> dict[str, Any]:
    """Build a grant row targeting ``target`` at ``level``."""
    row = {
        "id": id_,
        "teacher_id": teacher_id,
        "permission_level": level,
        "college_id": None,
        "major_id": None,
        "class_id": None,
        "academic_year": "2024-2025",
    }
    if level != "school":
        row[f"{level}_id"] = target
    return row


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def tables() -> dict[str, list[dict[str, Any]]]:
    """Provide a fresh copy of the sample tables."""
    return sample_tables()


@pytest.fixture
def make_store() -> Callable[..., FakeRowStore]:
    """Factory for in-memory row stores."""
    return FakeRowStore


@pytest.fixture
def make_grant() -> Callable[..., dict[str, Any]]:
    """Factory for grant rows."""
    return grant


@pytest.fixture
def make_context(settings: Settings) -> Callable[..., AccessContext]:
    """Factory for access contexts over a store."""

    def factory(store: Any, user_id: str = "t1", role: str | None = "teacher") -> AccessContext:
        return AccessContext(CurrentUser(id=user_id, role=role), store, settings)

    return factory
