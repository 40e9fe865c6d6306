# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Permission domain package.

This package provides teacher access control:
- Resolving grant rows into a Scope (All / None / Restricted)
- Narrowing a Scope into a student predicate
- Permission views with organization names
- Admin views over teacher accounts
"""

from src.domains.permission.resolver import (
    PermissionResolver,
    Scope,
    ScopeKind,
    parse_grant,
    scope_from_grants,
)
from src.domains.permission.scope_filter import StudentFilter, narrow
from src.domains.permission.service import (
    PermissionService,
    PermissionServiceError,
    TeacherNotFoundError,
)

__all__ = [
    "PermissionResolver",
    "PermissionService",
    "PermissionServiceError",
    "Scope",
    "ScopeKind",
    "StudentFilter",
    "TeacherNotFoundError",
    "narrow",
    "parse_grant",
    "scope_from_grants",
]
