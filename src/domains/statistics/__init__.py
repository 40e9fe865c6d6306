# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Statistics domain services.

This module provides scope-restricted assessment statistics:
- Batched aggregation (counts, score avg/min/max) over large id sets
- Overview of the students visible to a teacher
- Per college/major/class breakdowns

Usage:
    from src.domains.statistics import StatisticsService

    service = StatisticsService(context)
    overview = await service.get_overview()
    groups = await service.get_grade_statistics()
"""

from src.domains.statistics.aggregator import (
    AggregateResults,
    BatchedAggregator,
    CountRequest,
    ScoreRequest,
    ScoreSummary,
)
from src.domains.statistics.service import OrgGroup, StatisticsPhase, StatisticsService

__all__ = [
    # Aggregation
    "BatchedAggregator",
    "CountRequest",
    "ScoreRequest",
    "ScoreSummary",
    "AggregateResults",
    # Service
    "StatisticsService",
    "StatisticsPhase",
    "OrgGroup",
]
