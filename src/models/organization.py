# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Organization tree models (college → major → class)."""

from collections.abc import Iterator
from enum import Enum

from pydantic import BaseModel, Field

from src.core.exceptions import InconsistentDataError


class OrgLevel(str, Enum):
    """Hierarchy levels a permission grant can target."""

    SCHOOL = "school"
    COLLEGE = "college"
    MAJOR = "major"
    CLASS = "class"


class ClassNode(BaseModel):
    """A class leaf of the organization tree."""

    id: str
    name: str
    major_id: str
    enrollment_year: int
    class_number: int | None = None


class MajorNode(BaseModel):
    """A major with its classes."""

    id: str
    code: str
    name: str
    college_id: str
    classes: list[ClassNode] = Field(default_factory=list)


class CollegeNode(BaseModel):
    """A college with its majors."""

    id: str
    code: str
    name: str
    description: str | None = None
    majors: list[MajorNode] = Field(default_factory=list)


class OrganizationTree(BaseModel):
    """The College→Major→Class containment hierarchy."""

    colleges: list[CollegeNode] = Field(default_factory=list)

    def iter_majors(self) -> Iterator[MajorNode]:
        """Iterate majors in tree order."""
        for college in self.colleges:
            yield from college.majors

    def iter_classes(self) -> Iterator[ClassNode]:
        """Iterate classes in tree order."""
        for major in self.iter_majors():
            yield from major.classes

    def find_college(self, college_id: str) -> CollegeNode | None:
        """Look up a college by id."""
        return next((c for c in self.colleges if c.id == college_id), None)

    def find_major(self, major_id: str) -> MajorNode | None:
        """Look up a major by id."""
        return next((m for m in self.iter_majors() if m.id == major_id), None)

    def find_class(self, class_id: str) -> ClassNode | None:
        """Look up a class by id."""
        return next((c for c in self.iter_classes() if c.id == class_id), None)

    def require_major(self, major_id: str) -> MajorNode:
        """Look up a major that must be in the tree.

        Raises:
            InconsistentDataError: If the major or its college is missing.
        """
        major = self.find_major(major_id)
        if major is None:
            raise InconsistentDataError(
                f"Major {major_id} is not in the organization tree", {"major_id": major_id}
            )
        return major

    def require_class(self, class_id: str) -> ClassNode:
        """Look up a class that must be in the tree.

        Raises:
            InconsistentDataError: If the class or one of its ancestors is missing.
        """
        node = self.find_class(class_id)
        if node is None:
            raise InconsistentDataError(
                f"Class {class_id} is not in the organization tree", {"class_id": class_id}
            )
        return node


class StudentIdPreview(BaseModel):
    """Next free student number for an organization path."""

    student_id: str
    next_number: int
    format_description: str
