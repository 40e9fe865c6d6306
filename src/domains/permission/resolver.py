# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Permission resolution: grant rows to a normalized Scope.

A teacher's scope is one of:
- All: superuser role, or any school-level grant (most permissive wins)
- None: no grants at all (explicit "no access")
- Restricted: deduplicated college, major and class id sets

Level selection among a Restricted scope's sets happens later, in
src.domains.permission.scope_filter.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import ValidationError

from src.domains.auth.context import AccessContext
from src.infrastructure.store import Equals, RowQuery
from src.models.organization import OrgLevel
from src.models.permission import PermissionGrant

logger = logging.getLogger(__name__)

GRANT_COLUMNS = (
    "id",
    "teacher_id",
    "permission_level",
    "college_id",
    "major_id",
    "class_id",
    "academic_year",
)


class ScopeKind(str, Enum):
    """Kinds of visibility scope."""

    ALL = "all"
    NONE = "none"
    RESTRICTED = "restricted"


@dataclass(frozen=True)
class Scope:
    """Resolved visibility boundary of a teacher.

    Attributes:
        kind: All, None or Restricted.
        college_ids: Granted college ids (Restricted only).
        major_ids: Granted major ids (Restricted only).
        class_ids: Granted class ids (Restricted only).
    """

    kind: ScopeKind
    college_ids: frozenset[str] = field(default_factory=frozenset)
    major_ids: frozenset[str] = field(default_factory=frozenset)
    class_ids: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def unrestricted(cls) -> "Scope":
        """Scope that sees every student."""
        return cls(ScopeKind.ALL)

    @classmethod
    def no_access(cls) -> "Scope":
        """Scope that sees no student."""
        return cls(ScopeKind.NONE)

    @classmethod
    def restricted(
        cls,
        college_ids: Iterable[str] = (),
        major_ids: Iterable[str] = (),
        class_ids: Iterable[str] = (),
    ) -> "Scope":
        """Scope limited to the given organization ids."""
        return cls(
            ScopeKind.RESTRICTED,
            college_ids=frozenset(college_ids),
            major_ids=frozenset(major_ids),
            class_ids=frozenset(class_ids),
        )

    @property
    def is_all(self) -> bool:
        return self.kind == ScopeKind.ALL

    @property
    def is_none(self) -> bool:
        return self.kind == ScopeKind.NONE


def parse_grant(row: Mapping[str, Any]) -> PermissionGrant | None:
    """Validate one grant row.

    A grant must target exactly the id of its level (none for school).
    Malformed rows are logged and dropped.

    Returns:
        The grant, or None when the row is inconsistent.
    """
    try:
        grant = PermissionGrant.model_validate(dict(row))
    except ValidationError as e:
        logger.warning("Ignoring malformed permission grant %s: %s", row.get("id"), e)
        return None

    if grant.permission_level != OrgLevel.SCHOOL and not grant.target_id:
        logger.warning(
            "Ignoring %s-level grant %s without a %s id",
            grant.permission_level.value,
            grant.id,
            grant.permission_level.value,
        )
        return None
    return grant


def scope_from_grants(grants: Iterable[PermissionGrant]) -> Scope:
    """Fold validated grants into a Scope.

    Args:
        grants: The teacher's grants (already validated).

    Returns:
        None for no grants, All when any grant is school-level,
        otherwise Restricted with one id set per level.
    """
    grants = list(grants)
    if not grants:
        return Scope.no_access()

    if any(g.permission_level == OrgLevel.SCHOOL for g in grants):
        return Scope.unrestricted()

    ids: dict[OrgLevel, set[str]] = {
        OrgLevel.COLLEGE: set(),
        OrgLevel.MAJOR: set(),
        OrgLevel.CLASS: set(),
    }
    for grant in grants:
        ids[grant.permission_level].add(grant.target_id)

    return Scope.restricted(
        college_ids=ids[OrgLevel.COLLEGE],
        major_ids=ids[OrgLevel.MAJOR],
        class_ids=ids[OrgLevel.CLASS],
    )


class PermissionResolver:
    """Resolves a teacher's grants into a Scope.

    Attributes:
        _context: Access context of the current request.

    Example:
        >>> resolver = PermissionResolver(context)
        >>> scope = await resolver.resolve_for()
        >>> scope.kind
        <ScopeKind.RESTRICTED: 'restricted'>
    """

    def __init__(self, context: AccessContext) -> None:
        """Initialize the resolver.

        Args:
            context: Access context of the current request.
        """
        self._context = context
        self._store = context.store
        self._superuser_role = context.settings.access.superuser_role

    async def fetch_grant_rows(self, teacher_id: str) -> list[dict[str, Any]]:
        """Fetch the raw grant rows of a teacher.

        Raises:
            UpstreamError: If the read fails.
        """
        return await self._store.fetch(
            RowQuery(
                "teacher_permissions",
                columns=GRANT_COLUMNS,
                predicates=(Equals("teacher_id", teacher_id),),
            )
        )

    async def fetch_grants(self, teacher_id: str) -> list[PermissionGrant]:
        """Fetch and validate the grants of a teacher.

        Raises:
            UpstreamError: If the read fails.
        """
        rows = await self.fetch_grant_rows(teacher_id)
        return [grant for grant in map(parse_grant, rows) if grant is not None]

    async def resolve(self, teacher_id: str, role: str | None = None) -> Scope:
        """Resolve the scope of a teacher.

        Args:
            teacher_id: Profile id of the teacher.
            role: Role of the teacher when known. The superuser role
                resolves to All without reading grants.

        Returns:
            The teacher's Scope.

        Raises:
            UpstreamError: If the grants cannot be read.
        """
        if role == self._superuser_role:
            logger.debug("Teacher %s holds superuser role, scope is all", teacher_id)
            return Scope.unrestricted()

        rows = await self.fetch_grant_rows(teacher_id)
        if not rows:
            logger.debug("Teacher %s has no grants, scope is none", teacher_id)
            return Scope.no_access()

        grants = [grant for grant in map(parse_grant, rows) if grant is not None]
        if not grants:
            # Only malformed grants: restricted to nothing
            return Scope.restricted()

        scope = scope_from_grants(grants)
        logger.debug(
            "Teacher %s scope %s (colleges=%d, majors=%d, classes=%d)",
            teacher_id,
            scope.kind.value,
            len(scope.college_ids),
            len(scope.major_ids),
            len(scope.class_ids),
        )
        return scope

    async def resolve_for(self, teacher_id: str | None = None) -> Scope:
        """Resolve the scope of ``teacher_id``, defaulting to the caller.

        The caller's role only counts when resolving the caller's own scope.

        Raises:
            UnauthorizedError: If a non-superuser asks for another teacher.
            UpstreamError: If the grants cannot be read.
        """
        user = self._context.user
        if teacher_id is None or teacher_id == user.id:
            return await self.resolve(user.id, user.role)
        self._context.require_any_role(self._superuser_role)
        return await self.resolve(teacher_id)
