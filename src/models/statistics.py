# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Statistics response models."""

from typing import Literal

from pydantic import BaseModel


class StudentStatistics(BaseModel):
    """Overview of the students visible to a teacher."""

    total_students: int = 0
    total_assessments: int = 0
    completed_assessments: int = 0
    in_progress_assessments: int = 0
    completion_rate: float = 0
    class_count: int = 0


class GradeStatistics(BaseModel):
    """Statistics of one organizational group (college, major or class)."""

    grade: str
    level: Literal["college", "major", "class"]
    group_id: str
    total_students: int
    total_assessments: int
    completed_assessments: int
    completion_rate: float
    avg_score: float | None = None
    min_score: float | None = None
    max_score: float | None = None
