# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Permission service for teacher-facing permission views.

This module provides the PermissionService that handles:
- Listing a teacher's grants with organization names
- Listing the enrollment years inside a teacher's scope
- Admin views over teacher accounts and their grants

Grants are only read here; assigning and removing them belongs to the
admin tooling. Reading another teacher's grants requires the superuser
role.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable

from src.core.exceptions import AccessError
from src.domains.auth.context import AccessContext
from src.domains.organization.service import OrganizationService
from src.domains.permission.resolver import GRANT_COLUMNS, PermissionResolver, parse_grant
from src.infrastructure.store import Equals, In, Order, RowQuery
from src.models.organization import OrgLevel
from src.models.permission import (
    PermissionDetail,
    PermissionGrant,
    TeacherInfo,
    TeacherListItem,
    TeacherPage,
)
from src.utils.concurrency import gather_or_cancel

logger = logging.getLogger(__name__)

SUPERUSER_GRANT_ID = "admin-default"

TEACHER_COLUMNS = ("id", "email", "full_name", "role", "created_at")


class PermissionServiceError(AccessError):
    """Base exception for permission service errors."""

    pass


class TeacherNotFoundError(PermissionServiceError):
    """Raised when a profile does not exist or is not a teacher."""

    pass


class PermissionService:
    """Service for reading teacher permissions.

    Attributes:
        _context: Access context of the current request.
        _resolver: Permission resolver.
        _organization: Organization service.
    """

    def __init__(
        self,
        context: AccessContext,
        resolver: PermissionResolver | None = None,
        organization: OrganizationService | None = None,
    ) -> None:
        """Initialize the permission service.

        Args:
            context: Access context of the current request.
            resolver: Permission resolver (built from context if omitted).
            organization: Organization service (built from context if omitted).
        """
        access = context.settings.access
        self._context = context
        self._store = context.store
        self._default_year = access.default_academic_year
        self._superuser_role = access.superuser_role
        self._teacher_role = access.teacher_role
        self._resolver = resolver or PermissionResolver(context)
        self._organization = organization or OrganizationService(context)

    async def get_permission_details(self, teacher_id: str | None = None) -> list[PermissionDetail]:
        """Get a teacher's grants with organization names.

        The superuser gets a single synthetic school-level grant.

        Args:
            teacher_id: Teacher to list; defaults to the caller.

        Raises:
            UnauthorizedError: If a non-superuser asks for another teacher.
            UpstreamError: If a store call fails.
        """
        if teacher_id is None or teacher_id == self._context.user.id:
            if self._context.is_superuser:
                return [
                    PermissionDetail(
                        id=SUPERUSER_GRANT_ID,
                        permission_level=OrgLevel.SCHOOL,
                        academic_year=self._default_year,
                    )
                ]
            teacher_id = self._context.user.id
        else:
            self._context.require_any_role(self._superuser_role)

        grants = await self._resolver.fetch_grants(teacher_id)
        return await self._enrich(grants)

    async def get_accessible_enrollment_years(self, teacher_id: str | None = None) -> list[int]:
        """Get the enrollment years of the classes inside a teacher's scope.

        Unlike student visibility, this is the union over every grant.

        Args:
            teacher_id: Teacher to compute for; defaults to the caller.

        Returns:
            Sorted distinct enrollment years.

        Raises:
            UnauthorizedError: If a non-superuser asks for another teacher.
            UpstreamError: If a store call fails.
        """
        scope = await self._resolver.resolve_for(teacher_id)
        if scope.is_none:
            return []

        tree = await self._organization.get_tree()
        years: set[int] = set()
        for college in tree.colleges:
            college_granted = scope.is_all or college.id in scope.college_ids
            for major in college.majors:
                major_granted = college_granted or major.id in scope.major_ids
                for cls in major.classes:
                    if major_granted or cls.id in scope.class_ids:
                        years.add(cls.enrollment_year)
        return sorted(years)

    async def list_teachers(self, skip: int = 0, limit: int = 20) -> TeacherPage:
        """List teacher accounts, newest first, each with its grants.

        Args:
            skip: Rows to skip.
            limit: Page size.

        Raises:
            UnauthorizedError: If the caller is not the superuser.
            ValueError: If skip is negative or limit is not positive.
            UpstreamError: If a store call fails.
        """
        self._context.require_any_role(self._superuser_role)
        if skip < 0 or limit < 1:
            raise ValueError("skip must be >= 0 and limit >= 1")

        query = RowQuery(
            "profiles",
            columns=TEACHER_COLUMNS,
            predicates=(Equals("role", self._teacher_role),),
            order_by=(Order("created_at", descending=True),),
            limit=limit,
            offset=skip,
        )
        total, rows = await gather_or_cancel([self._store.count(query), self._store.fetch(query)])

        grants: dict[str, list[PermissionGrant]] = defaultdict(list)
        if rows:
            grant_rows = await self._store.fetch(
                RowQuery(
                    "teacher_permissions",
                    columns=GRANT_COLUMNS,
                    predicates=(In("teacher_id", [row["id"] for row in rows]),),
                )
            )
            for grant in map(parse_grant, grant_rows):
                if grant is not None:
                    grants[grant.teacher_id].append(grant)

        return TeacherPage(
            items=[TeacherListItem(**row, permissions=grants[row["id"]]) for row in rows],
            total=total,
        )

    async def get_teacher_info(self, teacher_id: str) -> TeacherInfo:
        """Get one teacher's profile with enriched grants.

        Args:
            teacher_id: Profile id of the teacher.

        Raises:
            UnauthorizedError: If the caller is not the superuser.
            TeacherNotFoundError: If no teacher profile has this id.
            UpstreamError: If a store call fails.
        """
        self._context.require_any_role(self._superuser_role)

        rows, grants = await gather_or_cancel(
            [
                self._store.fetch(
                    RowQuery(
                        "profiles",
                        columns=TEACHER_COLUMNS,
                        predicates=(
                            Equals("id", teacher_id),
                            Equals("role", self._teacher_role),
                        ),
                        limit=1,
                    )
                ),
                self._resolver.fetch_grants(teacher_id),
            ]
        )
        if not rows:
            raise TeacherNotFoundError(f"Teacher {teacher_id} not found", {"teacher_id": teacher_id})

        return TeacherInfo(**rows[0], permissions=await self._enrich(grants))

    async def _enrich(self, grants: list[PermissionGrant]) -> list[PermissionDetail]:
        if not grants:
            return []

        college_names, major_names, class_names = await gather_or_cancel(
            [
                self._names("colleges", (g.college_id for g in grants)),
                self._names("majors", (g.major_id for g in grants)),
                self._names("classes", (g.class_id for g in grants)),
            ]
        )

        details = []
        for grant in grants:
            detail = PermissionDetail(
                id=grant.id,
                permission_level=grant.permission_level,
                college_id=grant.college_id,
                major_id=grant.major_id,
                class_id=grant.class_id,
                college_name=college_names.get(grant.college_id),
                major_name=major_names.get(grant.major_id),
                class_name=class_names.get(grant.class_id),
                academic_year=grant.academic_year or self._default_year,
            )
            if grant.target_id and not self._has_target_name(detail):
                logger.warning(
                    "Grant %s references missing %s %s",
                    grant.id,
                    grant.permission_level.value,
                    grant.target_id,
                )
            details.append(detail)
        return details

    async def _names(self, table: str, ids: Iterable[str | None]) -> dict[str, str]:
        wanted = sorted({i for i in ids if i})
        if not wanted:
            return {}
        rows = await self._store.fetch(
            RowQuery(table, columns=("id", "name"), predicates=(In("id", wanted),))
        )
        return {row["id"]: row["name"] for row in rows}

    @staticmethod
    def _has_target_name(detail: PermissionDetail) -> bool:
        if detail.permission_level == OrgLevel.COLLEGE:
            return detail.college_name is not None
        if detail.permission_level == OrgLevel.MAJOR:
            return detail.major_name is not None
        if detail.permission_level == OrgLevel.CLASS:
            return detail.class_name is not None
        return True

