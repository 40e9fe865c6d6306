# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student service for scope-restricted student reads.

This module provides the StudentService that handles:
- Paginated student listings inside the caller's scope
- Student details with assessment history

Example:
    >>> service = StudentService(context)
    >>> page = await service.list_students(StudentFilters(search="li", limit=10))
    >>> detail = await service.get_student_detail(page.items[0].id)
"""

import logging
from collections import defaultdict
from typing import Any

from src.core.exceptions import AccessError
from src.domains.auth.context import AccessContext
from src.domains.permission.resolver import PermissionResolver
from src.domains.permission.scope_filter import StudentFilter, narrow
from src.domains.statistics.aggregator import BatchedAggregator
from src.infrastructure.store import (
    AnyOf,
    Equals,
    ILike,
    In,
    Order,
    Predicate,
    RowQuery,
    contains_pattern,
)
from src.models.assessment import AssessmentRecord, AssessmentStatus, extract_score
from src.models.student import StudentDetail, StudentFilters, StudentListItem, StudentPage
from src.utils.concurrency import gather_or_cancel

logger = logging.getLogger(__name__)

STUDENT_COLUMNS = (
    "id",
    "email",
    "full_name",
    "student_id",
    "role",
    "college_id",
    "major_id",
    "class_id",
    "enrollment_year",
    "created_at",
)

SEARCH_COLUMNS = ("full_name", "student_id", "email")

ORG_TABLES = (
    ("college_id", "college_name", "colleges"),
    ("major_id", "major_name", "majors"),
    ("class_id", "class_name", "classes"),
)


class StudentServiceError(AccessError):
    """Base exception for student service errors."""

    pass


class StudentNotFoundError(StudentServiceError):
    """Raised when a student does not exist or is outside the caller's scope."""

    pass


class StudentService:
    """Service for reading students inside the caller's scope.

    Attributes:
        _context: Access context of the current request.
        _resolver: Permission resolver.
    """

    def __init__(
        self,
        context: AccessContext,
        resolver: PermissionResolver | None = None,
        aggregator: BatchedAggregator | None = None,
    ) -> None:
        """Initialize the student service.

        Args:
            context: Access context of the current request.
            resolver: Permission resolver (built from context if omitted).
            aggregator: Batched reader for assessment rows (built from
                settings if omitted).
        """
        settings = context.settings
        self._context = context
        self._store = context.store
        self._student_role = settings.access.student_role
        self._allowed_roles = (settings.access.teacher_role, settings.access.superuser_role)
        self._resolver = resolver or PermissionResolver(context)
        self._aggregator = aggregator or BatchedAggregator(
            context.store,
            batch_size=settings.statistics.batch_size,
            max_concurrency=settings.statistics.max_concurrency,
        )

    async def list_students(self, filters: StudentFilters | None = None) -> StudentPage:
        """List students visible to the caller.

        Extra filters are AND'ed on top of the scope filter.

        Args:
            filters: Organization, search and pagination filters.

        Returns:
            One page of students, newest first, with the total count.

        Raises:
            UnauthorizedError: If the caller is neither teacher nor admin.
            UpstreamError: If a store call fails.
        """
        self._context.require_any_role(*self._allowed_roles)
        filters = filters or StudentFilters()

        student_filter = await self._student_filter()
        if student_filter.matches_nothing:
            return StudentPage()

        query = RowQuery(
            "profiles",
            columns=STUDENT_COLUMNS,
            predicates=student_filter.with_predicates(*self._extra_predicates(filters)).predicates,
            order_by=(Order("created_at", descending=True),),
            limit=filters.limit,
            offset=filters.skip,
        )
        total, rows = await gather_or_cancel([self._store.count(query), self._store.fetch(query)])

        names, scores = await gather_or_cancel(
            [
                self._org_names(rows),
                self._average_scores([row["id"] for row in rows]),
            ]
        )
        items = [
            StudentListItem(**row, **names[row["id"]], avg_score=scores.get(row["id"]))
            for row in rows
        ]
        return StudentPage(items=items, total=total)

    async def get_student_detail(self, student_id: str) -> StudentDetail:
        """Get one student with its assessments.

        Args:
            student_id: Profile id of the student.

        Raises:
            StudentNotFoundError: If the student does not exist or is not
                visible to the caller.
            UpstreamError: If a store call fails.
        """
        student_filter = await self._student_filter()
        if student_filter.matches_nothing:
            raise StudentNotFoundError(f"Student {student_id} not found")

        rows = await self._store.fetch(
            RowQuery(
                "profiles",
                columns=STUDENT_COLUMNS,
                predicates=student_filter.with_predicates(Equals("id", student_id)).predicates,
                limit=1,
            )
        )
        if not rows:
            raise StudentNotFoundError(f"Student {student_id} not found")
        row = rows[0]

        names, assessments = await gather_or_cancel(
            [
                self._org_names(rows),
                self._store.fetch(
                    RowQuery(
                        "assessments",
                        predicates=(Equals("user_id", student_id),),
                        order_by=(Order("created_at", descending=True),),
                    )
                ),
            ]
        )
        records = [AssessmentRecord.model_validate(a) for a in assessments]
        scores = [r.score for r in records if r.status == AssessmentStatus.COMPLETED and r.score is not None]

        return StudentDetail(
            **row,
            **names[row["id"]],
            avg_score=sum(scores) / len(scores) if scores else None,
            assessments=records,
        )

    async def _student_filter(self) -> StudentFilter:
        scope = await self._resolver.resolve_for()
        return narrow(scope, self._student_role)

    @staticmethod
    def _extra_predicates(filters: StudentFilters) -> list[Predicate]:
        predicates: list[Predicate] = []
        if filters.college_id:
            predicates.append(Equals("college_id", filters.college_id))
        if filters.major_id:
            predicates.append(Equals("major_id", filters.major_id))
        if filters.class_id:
            predicates.append(Equals("class_id", filters.class_id))
        if filters.search and filters.search.strip():
            pattern = contains_pattern(filters.search.strip())
            predicates.append(AnyOf(ILike(column, pattern) for column in SEARCH_COLUMNS))
        return predicates

    async def _org_names(self, rows: list[dict[str, Any]]) -> dict[str, dict[str, str | None]]:
        """Resolve college/major/class names for each student row."""

        async def lookup(table: str, id_column: str) -> dict[str, str]:
            ids = sorted({row[id_column] for row in rows if row.get(id_column)})
            if not ids:
                return {}
            found = await self._store.fetch(
                RowQuery(table, columns=("id", "name"), predicates=(In("id", ids),))
            )
            return {r["id"]: r["name"] for r in found}

        lookups = await gather_or_cancel(
            lookup(table, id_column) for id_column, _, table in ORG_TABLES
        )

        return {
            row["id"]: {
                name_field: by_id.get(row.get(id_column))
                for (id_column, name_field, _), by_id in zip(ORG_TABLES, lookups)
            }
            for row in rows
        }

    async def _average_scores(self, student_ids: list[str]) -> dict[str, float]:
        """Mean completed-assessment score per student (students without scores omitted)."""
        if not student_ids:
            return {}

        rows = await self._aggregator.fetch_rows(
            student_ids,
            columns=("user_id", "raw_scores"),
            predicates=(Equals("status", AssessmentStatus.COMPLETED.value),),
        )

        values: dict[str, list[float]] = defaultdict(list)
        for row in rows:
            score = extract_score(row.get("raw_scores"))
            if score is not None:
                values[row["user_id"]].append(score)

        return {student_id: sum(v) / len(v) for student_id, v in values.items()}
