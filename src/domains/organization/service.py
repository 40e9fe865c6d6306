# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Organization service for reference-data reads.

This module provides the OrganizationService that handles:
- The College→Major→Class tree
- Flat college, major and class listings
- Student number previews

Example:
    >>> service = OrganizationService(context)
    >>> tree = await service.get_tree()
    >>> majors = await service.list_majors(college_id=tree.colleges[0].id)
"""

import logging
from typing import Any

from src.domains.auth.context import AccessContext
from src.domains.organization.tree import build_organization_tree
from src.infrastructure.store import Equals, ILike, Order, RowQuery, prefix_pattern
from src.models.organization import OrganizationTree, StudentIdPreview
from src.utils.concurrency import gather_or_cancel

logger = logging.getLogger(__name__)

COLLEGE_COLUMNS = ("id", "code", "name", "description")
MAJOR_COLUMNS = ("id", "code", "name", "college_id")
CLASS_COLUMNS = ("id", "name", "class_number", "major_id", "enrollment_year")


class OrganizationService:
    """Service for reading the organization hierarchy.

    Attributes:
        _context: Access context of the current request.
    """

    def __init__(self, context: AccessContext) -> None:
        """Initialize the organization service.

        Args:
            context: Access context of the current request.
        """
        self._context = context
        self._store = context.store

    async def get_tree(self) -> OrganizationTree:
        """Fetch the reference tables and build the organization tree.

        Raises:
            UpstreamError: If any of the three reads fails.
        """
        colleges, majors, classes = await gather_or_cancel(
            [self.list_colleges(), self.list_majors(), self.list_classes()]
        )
        tree = build_organization_tree(colleges, majors, classes)
        logger.debug(
            "Organization tree built: %d colleges, %d majors, %d classes",
            len(tree.colleges),
            sum(1 for _ in tree.iter_majors()),
            sum(1 for _ in tree.iter_classes()),
        )
        return tree

    async def list_colleges(self, include_majors: bool = False) -> list[dict[str, Any]]:
        """List colleges ordered by code.

        Args:
            include_majors: Attach each college's majors under ``majors``.
        """
        colleges = await self._store.fetch(
            RowQuery("colleges", columns=COLLEGE_COLUMNS, order_by=(Order("code"),))
        )
        if not include_majors:
            return colleges

        majors = await self.list_majors()
        for college in colleges:
            college["majors"] = [m for m in majors if m["college_id"] == college["id"]]
        return colleges

    async def list_majors(self, college_id: str | None = None) -> list[dict[str, Any]]:
        """List majors ordered by code, optionally within one college."""
        query = RowQuery("majors", columns=MAJOR_COLUMNS, order_by=(Order("code"),))
        if college_id:
            query = query.where(Equals("college_id", college_id))
        return await self._store.fetch(query)

    async def list_classes(
        self,
        major_id: str | None = None,
        enrollment_year: int | None = None,
    ) -> list[dict[str, Any]]:
        """List classes ordered by class number."""
        query = RowQuery("classes", columns=CLASS_COLUMNS, order_by=(Order("class_number"),))
        if major_id:
            query = query.where(Equals("major_id", major_id))
        if enrollment_year:
            query = query.where(Equals("enrollment_year", enrollment_year))
        return await self._store.fetch(query)

    async def preview_student_id(
        self,
        college_code: str,
        major_code: str,
        enrollment_year: int,
        class_number: int,
    ) -> StudentIdPreview:
        """Preview the next student number for an organization path.

        Format is ``YYYYCCMMCNNN``: enrollment year, 2-digit college code,
        2-digit major code, 1-digit class number and a 3-digit sequence.

        Raises:
            ValueError: If the class number is not a single digit.
        """
        if not 0 <= class_number <= 9:
            raise ValueError("class_number must be a single digit")

        prefix = f"{enrollment_year}{college_code.zfill(2)}{major_code.zfill(2)}{class_number}"
        existing = await self._store.count(
            RowQuery("profiles", predicates=(ILike("student_id", prefix_pattern(prefix)),))
        )
        next_number = existing + 1

        return StudentIdPreview(
            student_id=f"{prefix}{next_number:03d}",
            next_number=next_number,
            format_description=(
                f"{enrollment_year} college {college_code} major {major_code} "
                f"class {class_number} no. {next_number}"
            ),
        )
