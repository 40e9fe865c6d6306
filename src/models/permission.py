# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Permission grant models."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from src.models.organization import OrgLevel


class PermissionGrant(BaseModel):
    """One row of the teacher_permissions table."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    teacher_id: str
    permission_level: OrgLevel
    college_id: str | None = None
    major_id: str | None = None
    class_id: str | None = None
    academic_year: str | None = None

    @property
    def target_id(self) -> str | None:
        """The id the grant's level requires (None for school level)."""
        if self.permission_level == OrgLevel.COLLEGE:
            return self.college_id
        if self.permission_level == OrgLevel.MAJOR:
            return self.major_id
        if self.permission_level == OrgLevel.CLASS:
            return self.class_id
        return None


class PermissionDetail(BaseModel):
    """A grant enriched with organization names."""

    id: str
    permission_level: OrgLevel
    college_id: str | None = None
    major_id: str | None = None
    class_id: str | None = None
    college_name: str | None = None
    major_name: str | None = None
    class_name: str | None = None
    academic_year: str


class TeacherListItem(BaseModel):
    """A teacher profile with its raw grants."""

    id: str
    email: str | None = None
    full_name: str | None = None
    role: str = "teacher"
    created_at: datetime | None = None
    permissions: list[PermissionGrant] = Field(default_factory=list)


class TeacherPage(BaseModel):
    """One page of teachers plus the total teacher count."""

    items: list[TeacherListItem] = Field(default_factory=list)
    total: int = 0


class TeacherInfo(BaseModel):
    """A teacher profile with grants enriched by organization names."""

    id: str
    email: str | None = None
    full_name: str | None = None
    role: str = "teacher"
    created_at: datetime | None = None
    permissions: list[PermissionDetail] = Field(default_factory=list)
