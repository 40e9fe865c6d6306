# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student listing and detail models."""

from datetime import datetime

from pydantic import BaseModel, Field

from src.models.assessment import AssessmentRecord


class StudentFilters(BaseModel):
    """Optional filters AND'ed on top of the caller's scope."""

    skip: int = Field(default=0, ge=0)
    limit: int = Field(default=20, ge=1, le=200)
    college_id: str | None = None
    major_id: str | None = None
    class_id: str | None = None
    search: str | None = None


class StudentListItem(BaseModel):
    """A student row enriched with organization names and average score."""

    id: str
    email: str | None = None
    full_name: str | None = None
    student_id: str | None = None
    role: str = "student"
    college_id: str | None = None
    major_id: str | None = None
    class_id: str | None = None
    enrollment_year: int | None = None
    college_name: str | None = None
    major_name: str | None = None
    class_name: str | None = None
    avg_score: float | None = None
    created_at: datetime | None = None


class StudentPage(BaseModel):
    """One page of students plus the total matching count."""

    items: list[StudentListItem] = Field(default_factory=list)
    total: int = 0


class StudentDetail(StudentListItem):
    """A student with assessment history."""

    assessments: list[AssessmentRecord] = Field(default_factory=list)
