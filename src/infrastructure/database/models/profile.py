# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""User profiles and teacher permission grants."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base


class Profile(Base):
    """A user profile (student, teacher or admin).

    Student rows carry their organizational path; the path columns are
    nullable because teachers and admins have none.
    """

    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    full_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    student_id: Mapped[str | None] = mapped_column(String(20), nullable=True, index=True)
    college_id: Mapped[str | None] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("colleges.id"), nullable=True, index=True
    )
    major_id: Mapped[str | None] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("majors.id"), nullable=True, index=True
    )
    class_id: Mapped[str | None] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("classes.id"), nullable=True, index=True
    )
    enrollment_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<Profile {self.id} ({self.role})>"


class TeacherPermission(Base):
    """One grant authorizing a teacher at exactly one hierarchical level."""

    __tablename__ = "teacher_permissions"

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True)
    teacher_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    permission_level: Mapped[str] = mapped_column(String(20), nullable=False)
    college_id: Mapped[str | None] = mapped_column(Uuid(as_uuid=False), nullable=True)
    major_id: Mapped[str | None] = mapped_column(Uuid(as_uuid=False), nullable=True)
    class_id: Mapped[str | None] = mapped_column(Uuid(as_uuid=False), nullable=True)
    academic_year: Mapped[str | None] = mapped_column(String(20), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<TeacherPermission {self.teacher_id} {self.permission_level}>"
