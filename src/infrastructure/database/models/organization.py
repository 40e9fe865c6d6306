# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Organization reference tables: colleges, majors and classes.

These rows are static reference data from this subsystem's point of view.
Foreign keys are declared, but the tree builder still tolerates orphans
because rows can be removed out of band.
"""

from sqlalchemy import ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, TimestampMixin


class College(Base, TimestampMixin):
    """A college (first level below the institution)."""

    __tablename__ = "colleges"

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True)
    code: Mapped[str] = mapped_column(String(10), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<College {self.code}: {self.name}>"


class Major(Base, TimestampMixin):
    """A major inside a college."""

    __tablename__ = "majors"

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True)
    code: Mapped[str] = mapped_column(String(10), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    college_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("colleges.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Major {self.code}: {self.name}>"


class Class(Base, TimestampMixin):
    """A class (cohort) inside a major."""

    __tablename__ = "classes"

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    class_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    major_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("majors.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    enrollment_year: Mapped[int] = mapped_column(Integer, nullable=False)

    def __repr__(self) -> str:
        return f"<Class {self.name} ({self.enrollment_year})>"
