# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Row store table definitions.

The TABLES registry maps the table names used by RowQuery to their
mapped classes.
"""

from src.infrastructure.database.models.assessment import Assessment
from src.infrastructure.database.models.base import Base, TimestampMixin
from src.infrastructure.database.models.organization import Class, College, Major
from src.infrastructure.database.models.profile import Profile, TeacherPermission

TABLES: dict[str, type[Base]] = {
    College.__tablename__: College,
    Major.__tablename__: Major,
    Class.__tablename__: Class,
    Profile.__tablename__: Profile,
    TeacherPermission.__tablename__: TeacherPermission,
    Assessment.__tablename__: Assessment,
}

__all__ = [
    "Base",
    "TimestampMixin",
    "College",
    "Major",
    "Class",
    "Profile",
    "TeacherPermission",
    "Assessment",
    "TABLES",
]
