# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Assessment record model and the score fallback rule."""

from collections.abc import Mapping
from datetime import datetime
from enum import Enum
from numbers import Real
from typing import Any

from pydantic import BaseModel, ConfigDict

SCORE_FIELDS = ("total_score", "final_score")


class AssessmentStatus(str, Enum):
    """Lifecycle status of an assessment."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


def extract_score(raw_scores: Mapping[str, Any] | None) -> float | None:
    """Return the score of an assessment.

    ``total_score`` wins when present; ``final_score`` is used only when
    ``total_score`` is missing or null. A value that is not a real number
    counts as no score.

    Args:
        raw_scores: The assessment's raw_scores JSON object.

    Returns:
        The score, or None.
    """
    if not isinstance(raw_scores, Mapping):
        return None

    value = None
    for field_name in SCORE_FIELDS:
        value = raw_scores.get(field_name)
        if value is not None:
            break

    if isinstance(value, bool) or not isinstance(value, Real):
        return None
    return float(value)


class AssessmentRecord(BaseModel):
    """An assessment as returned in student details."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    scale_id: str
    status: AssessmentStatus
    raw_scores: dict[str, Any] | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime | None = None

    @property
    def score(self) -> float | None:
        """Score according to the fallback rule."""
        return extract_score(self.raw_scores)
