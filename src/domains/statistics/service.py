# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Statistics service module.

This module computes assessment completion and score statistics over the
students a teacher may see.

Each call moves through Idle → ResolvingPermission → (Denied |
Aggregating) → Done. A teacher without grants is Denied and gets an
all-zero result without any aggregation. Store failures and an expired
deadline fail the whole call; inconsistent reference data only drops
the affected group.

Usage:
    from src.domains.statistics import StatisticsService

    service = StatisticsService(context)

    overview = await service.get_overview()
    groups = await service.get_grade_statistics()
"""

import asyncio
import logging
from collections.abc import Awaitable
from dataclasses import dataclass
from enum import Enum
from typing import TypeVar

from src.core.exceptions import InconsistentDataError, UpstreamError
from src.domains.auth.context import AccessContext
from src.domains.organization.service import OrganizationService
from src.domains.permission.resolver import PermissionResolver, Scope
from src.domains.permission.scope_filter import StudentFilter, narrow
from src.domains.statistics.aggregator import (
    BatchedAggregator,
    CountRequest,
    ScoreRequest,
)
from src.infrastructure.store import Equals, RowQuery
from src.models.assessment import AssessmentStatus
from src.models.organization import OrganizationTree, OrgLevel
from src.models.statistics import GradeStatistics, StudentStatistics
from src.utils.concurrency import gather_or_cancel

logger = logging.getLogger(__name__)

T = TypeVar("T")

TOTAL = "total"
COMPLETED = "completed"
IN_PROGRESS = "in_progress"
SCORES = "scores"

IS_COMPLETED = (Equals("status", AssessmentStatus.COMPLETED.value),)
IS_IN_PROGRESS = (Equals("status", AssessmentStatus.IN_PROGRESS.value),)

GROUP_COLUMNS = {
    OrgLevel.COLLEGE: "college_id",
    OrgLevel.MAJOR: "major_id",
    OrgLevel.CLASS: "class_id",
}


class StatisticsPhase(str, Enum):
    """Phases of one statistics call."""

    IDLE = "idle"
    RESOLVING_PERMISSION = "resolving_permission"
    DENIED = "denied"
    AGGREGATING = "aggregating"
    DONE = "done"


@dataclass(frozen=True)
class OrgGroup:
    """One organizational unit statistics are grouped by."""

    level: OrgLevel
    id: str
    name: str


def completion_rate(completed: int, total: int) -> float:
    """Completed share in percent, rounded to 2 decimals; 0 when total is 0."""
    if total <= 0:
        return 0
    return round(completed / total * 100, 2)


class StatisticsService:
    """Overview and per-group statistics restricted to a teacher's scope.

    Attributes:
        _context: Access context of the current request.
        _resolver: Permission resolver.
        _organization: Organization service (for the tree).
        _aggregator: Batched aggregator over the assessments table.
    """

    def __init__(
        self,
        context: AccessContext,
        resolver: PermissionResolver | None = None,
        organization: OrganizationService | None = None,
        aggregator: BatchedAggregator | None = None,
    ) -> None:
        """Initialize the statistics service.

        Args:
            context: Access context of the current request.
            resolver: Permission resolver (built from context if omitted).
            organization: Organization service (built from context if omitted).
            aggregator: Aggregator (built from settings if omitted).
        """
        settings = context.settings
        self._context = context
        self._store = context.store
        self._student_role = settings.access.student_role
        self._timeout = settings.statistics.request_timeout_seconds
        self._resolver = resolver or PermissionResolver(context)
        self._organization = organization or OrganizationService(context)
        self._aggregator = aggregator or BatchedAggregator(
            context.store,
            batch_size=settings.statistics.batch_size,
            max_concurrency=settings.statistics.max_concurrency,
        )

    async def get_overview(self, teacher_id: str | None = None) -> StudentStatistics:
        """Get the overview of the students visible to a teacher.

        Args:
            teacher_id: Teacher to compute for; defaults to the caller.

        Returns:
            Student and assessment counts. All zero when the teacher has no
            access.

        Raises:
            UnauthorizedError: If a non-superuser asks for another teacher.
            UpstreamError: If a store call fails or the deadline expires.
        """
        return await self._with_deadline("overview", self._overview(teacher_id))

    async def get_grade_statistics(self, teacher_id: str | None = None) -> list[GradeStatistics]:
        """Get statistics per organizational group.

        The grouping level follows the scope: All or college-narrowed
        scopes group by college, major-narrowed scopes by the majors of
        the owning colleges, class-narrowed scopes by the granted classes.

        Args:
            teacher_id: Teacher to compute for; defaults to the caller.

        Returns:
            One entry per group with at least one visible student, in
            reference-data order.

        Raises:
            UnauthorizedError: If a non-superuser asks for another teacher.
            UpstreamError: If a store call fails or the deadline expires.
        """
        return await self._with_deadline("grade_statistics", self._grade_statistics(teacher_id))

    async def _with_deadline(self, operation: str, call: Awaitable[T]) -> T:
        try:
            async with asyncio.timeout(self._timeout):
                return await call
        except TimeoutError as e:
            logger.error("Statistics %s exceeded %.1fs deadline", operation, self._timeout)
            raise UpstreamError(
                f"Statistics {operation} timed out",
                e,
                details={"timeout_seconds": self._timeout},
            ) from e

    def _enter(self, operation: str, phase: StatisticsPhase) -> None:
        logger.debug("Statistics %s: %s", operation, phase.value)

    async def _resolve(self, operation: str, teacher_id: str | None) -> tuple[Scope, StudentFilter]:
        self._enter(operation, StatisticsPhase.RESOLVING_PERMISSION)
        scope = await self._resolver.resolve_for(teacher_id)
        return scope, narrow(scope, self._student_role)

    async def _overview(self, teacher_id: str | None) -> StudentStatistics:
        self._enter("overview", StatisticsPhase.IDLE)
        scope, student_filter = await self._resolve("overview", teacher_id)
        if scope.is_none or student_filter.matches_nothing:
            self._enter("overview", StatisticsPhase.DENIED)
            return StudentStatistics()

        self._enter("overview", StatisticsPhase.AGGREGATING)
        students = await self._store.fetch(
            RowQuery("profiles", columns=("id", "class_id"), predicates=student_filter.predicates)
        )
        class_count = len({s["class_id"] for s in students if s.get("class_id")})

        if not students:
            self._enter("overview", StatisticsPhase.DONE)
            return StudentStatistics(class_count=class_count)

        results = await self._aggregator.aggregate(
            [s["id"] for s in students],
            [
                CountRequest(TOTAL),
                CountRequest(COMPLETED, IS_COMPLETED),
                CountRequest(IN_PROGRESS, IS_IN_PROGRESS),
            ],
        )
        total = results.count(TOTAL)
        completed = results.count(COMPLETED)

        self._enter("overview", StatisticsPhase.DONE)
        return StudentStatistics(
            total_students=len(students),
            total_assessments=total,
            completed_assessments=completed,
            in_progress_assessments=results.count(IN_PROGRESS),
            completion_rate=completion_rate(completed, total),
            class_count=class_count,
        )

    async def _grade_statistics(self, teacher_id: str | None) -> list[GradeStatistics]:
        self._enter("grade_statistics", StatisticsPhase.IDLE)
        scope, student_filter = await self._resolve("grade_statistics", teacher_id)
        if scope.is_none or student_filter.matches_nothing:
            self._enter("grade_statistics", StatisticsPhase.DENIED)
            return []

        self._enter("grade_statistics", StatisticsPhase.AGGREGATING)
        tree, students = await gather_or_cancel(
            [
                self._organization.get_tree(),
                self._store.fetch(
                    RowQuery(
                        "profiles",
                        columns=("id", "college_id", "major_id", "class_id"),
                        predicates=student_filter.predicates,
                    )
                ),
            ]
        )

        groups = self.select_groups(student_filter, tree)

        members: dict[str, list[str]] = {group.id: [] for group in groups}
        if groups:
            column = GROUP_COLUMNS[groups[0].level]
            for student in students:
                key = student.get(column)
                if key in members:
                    members[key].append(student["id"])

        populated = [group for group in groups if members[group.id]]
        stats = await gather_or_cancel(
            self._group_statistics(group, members[group.id]) for group in populated
        )

        self._enter("grade_statistics", StatisticsPhase.DONE)
        return stats

    def select_groups(self, student_filter: StudentFilter, tree: OrganizationTree) -> list[OrgGroup]:
        """Pick the groups statistics are reported for.

        Args:
            student_filter: The narrowed scope.
            tree: Organization tree.

        Returns:
            Groups in reference-data order. Granted ids missing from the
            tree are logged and skipped.
        """
        level = student_filter.level

        if level is None or level == OrgLevel.COLLEGE:
            for college_id in sorted(student_filter.ids):
                if tree.find_college(college_id) is None:
                    logger.warning("Granted college %s does not exist, skipping", college_id)
            return [OrgGroup(OrgLevel.COLLEGE, c.id, c.name) for c in tree.colleges]

        if level == OrgLevel.MAJOR:
            owning: set[str] = set()
            for major_id in sorted(student_filter.ids):
                try:
                    owning.add(tree.require_major(major_id).college_id)
                except InconsistentDataError as e:
                    logger.warning("Skipping granted major: %s", e)
            return [
                OrgGroup(OrgLevel.MAJOR, major.id, major.name)
                for college in tree.colleges
                if college.id in owning
                for major in college.majors
            ]

        classes = []
        for class_id in sorted(student_filter.ids):
            try:
                classes.append(tree.require_class(class_id))
            except InconsistentDataError as e:
                logger.warning("Skipping granted class: %s", e)
        classes.sort(key=lambda c: c.name)
        return [OrgGroup(OrgLevel.CLASS, c.id, c.name) for c in classes]

    async def _group_statistics(self, group: OrgGroup, student_ids: list[str]) -> GradeStatistics:
        results = await self._aggregator.aggregate(
            student_ids,
            [
                CountRequest(TOTAL),
                CountRequest(COMPLETED, IS_COMPLETED),
                ScoreRequest(SCORES, IS_COMPLETED),
            ],
        )
        total = results.count(TOTAL)
        completed = results.count(COMPLETED)
        scores = results.score(SCORES)

        return GradeStatistics(
            grade=group.name,
            level=group.level.value,
            group_id=group.id,
            total_students=len(student_ids),
            total_assessments=total,
            completed_assessments=completed,
            completion_rate=completion_rate(completed, total),
            avg_score=scores.avg,
            min_score=scores.min,
            max_score=scores.max,
        )
