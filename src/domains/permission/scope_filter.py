# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Scope narrowing: Scope to a student predicate.

A Restricted scope is narrowed on its most specific non-empty level:
class ids if any, else major ids, else college ids. The broader sets are
ignored, there is no union across levels.
"""

from dataclasses import dataclass, replace

from src.domains.permission.resolver import Scope, ScopeKind
from src.infrastructure.store import Equals, In, Predicate
from src.models.organization import OrgLevel

DEFAULT_STUDENT_ROLE = "student"

LEVEL_COLUMNS = {
    OrgLevel.COLLEGE: "college_id",
    OrgLevel.MAJOR: "major_id",
    OrgLevel.CLASS: "class_id",
}


@dataclass(frozen=True)
class StudentFilter:
    """Predicate selecting the students a scope can see.

    Attributes:
        predicates: Row predicates on the profiles table.
        level: Level the filter narrows on, None when unrestricted.
        ids: Organization ids at ``level``.
        matches_nothing: True when no student can match. Callers must
            not query the store in that case.
    """

    predicates: tuple[Predicate, ...]
    level: OrgLevel | None = None
    ids: frozenset[str] = frozenset()
    matches_nothing: bool = False

    @property
    def is_unrestricted(self) -> bool:
        return not self.matches_nothing and self.level is None

    def with_predicates(self, *predicates: Predicate) -> "StudentFilter":
        """Return a copy with caller filters AND'ed on top."""
        return replace(self, predicates=self.predicates + tuple(predicates))


def narrow(scope: Scope, student_role: str = DEFAULT_STUDENT_ROLE) -> StudentFilter:
    """Turn a Scope into a StudentFilter.

    Args:
        scope: Resolved scope.
        student_role: Role value of student profiles.

    Returns:
        All → every student; None → nothing; Restricted → students in the
        most specific non-empty id set.
    """
    base: tuple[Predicate, ...] = (Equals("role", student_role),)

    if scope.kind == ScopeKind.ALL:
        return StudentFilter(predicates=base)

    if scope.kind == ScopeKind.RESTRICTED:
        for level, ids in (
            (OrgLevel.CLASS, scope.class_ids),
            (OrgLevel.MAJOR, scope.major_ids),
            (OrgLevel.COLLEGE, scope.college_ids),
        ):
            if ids:
                return StudentFilter(
                    predicates=base + (In(LEVEL_COLUMNS[level], sorted(ids)),),
                    level=level,
                    ids=ids,
                )

    return StudentFilter(predicates=base + (In("id", ()),), matches_nothing=True)
