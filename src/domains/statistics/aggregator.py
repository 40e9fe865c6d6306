# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Batched aggregation over large student id sets.

Every aggregate filters on ``user_id IN (...)``. The id list is split into
fixed-size batches so no single store call carries an unbounded id list,
and the per-batch results are merged:

- Counts are summed.
- Scores are collected from every batch first; avg/min/max are computed
  once over the combined list.

The merged output equals an unbatched run for any batch size. All
(request, batch) calls run concurrently under a semaphore and join before
merging; one failing call cancels the rest and fails the whole aggregate.

Usage:
    from src.domains.statistics.aggregator import (
        BatchedAggregator,
        CountRequest,
        ScoreRequest,
    )

    aggregator = BatchedAggregator(store, batch_size=30)
    results = await aggregator.aggregate(
        student_ids,
        [
            CountRequest("total"),
            CountRequest("completed", (Equals("status", "completed"),)),
            ScoreRequest("scores", (Equals("status", "completed"),)),
        ],
    )
    results.count("completed"), results.score("scores").avg
"""

import asyncio
import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any, Union

from src.infrastructure.store import In, Predicate, RowQuery, RowStore
from src.models.assessment import extract_score
from src.utils.concurrency import gather_or_cancel

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 30
DEFAULT_MAX_CONCURRENCY = 8


@dataclass(frozen=True)
class CountRequest:
    """Count rows matching ``predicates`` (count-all when empty)."""

    name: str
    predicates: tuple[Predicate, ...] = ()


@dataclass(frozen=True)
class ScoreRequest:
    """Extract one numeric value per matching row for avg/min/max.

    Attributes:
        name: Result key.
        predicates: Extra row filters.
        column: Column holding the value (or the JSON it is extracted from).
        extract: Maps the column value to a number, None to drop the row.
    """

    name: str
    predicates: tuple[Predicate, ...] = ()
    column: str = "raw_scores"
    extract: Callable[[Any], float | None] = extract_score


AggregateRequest = Union[CountRequest, ScoreRequest]


@dataclass(frozen=True)
class ScoreSummary:
    """avg/min/max over a list of values; all None when there are none."""

    count: int = 0
    avg: float | None = None
    min: float | None = None
    max: float | None = None

    @classmethod
    def from_values(cls, values: Sequence[float]) -> "ScoreSummary":
        if not values:
            return cls()
        return cls(
            count=len(values),
            avg=round(sum(values) / len(values), 2),
            min=min(values),
            max=max(values),
        )


@dataclass
class AggregateResults:
    """Merged results keyed by request name."""

    counts: dict[str, int] = field(default_factory=dict)
    scores: dict[str, ScoreSummary] = field(default_factory=dict)

    def count(self, name: str) -> int:
        return self.counts[name]

    def score(self, name: str) -> ScoreSummary:
        return self.scores[name]


def partition(ids: Sequence[str], batch_size: int) -> list[tuple[str, ...]]:
    """Split ids into consecutive batches of at most ``batch_size``."""
    if batch_size < 1:
        raise ValueError("batch_size must be positive")
    return [tuple(ids[i : i + batch_size]) for i in range(0, len(ids), batch_size)]


class BatchedAggregator:
    """Runs count and score aggregates over arbitrarily many student ids.

    Attributes:
        _store: Row store to read from.
        _table: Table holding the aggregated rows.
        _id_column: Column holding the student id.
        _batch_size: Ids per store call.
        _semaphore: Bounds concurrent store calls of this aggregator.
    """

    def __init__(
        self,
        store: RowStore,
        batch_size: int = DEFAULT_BATCH_SIZE,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        table: str = "assessments",
        id_column: str = "user_id",
    ) -> None:
        """Initialize the aggregator.

        Args:
            store: Row store to read from.
            batch_size: Ids per store call.
            max_concurrency: Maximum store calls in flight.
            table: Table holding the aggregated rows.
            id_column: Column matched against the student ids.
        """
        if batch_size < 1:
            raise ValueError("batch_size must be positive")
        self._store = store
        self._batch_size = batch_size
        self._table = table
        self._id_column = id_column
        self._semaphore = asyncio.Semaphore(max_concurrency)

    @property
    def batch_size(self) -> int:
        return self._batch_size

    async def aggregate(
        self,
        student_ids: Iterable[str],
        requests: Sequence[AggregateRequest],
    ) -> AggregateResults:
        """Run every request over every batch and merge the results.

        Args:
            student_ids: Ids to aggregate over. Duplicates are ignored.
            requests: Aggregates to compute. Names must be unique.

        Returns:
            Merged counts and score summaries.

        Raises:
            ValueError: If two requests share a name.
            UpstreamError: If any batch call fails. No partial result.
        """
        names = [r.name for r in requests]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate aggregate request names: {names}")

        ids = list(dict.fromkeys(student_ids))
        batches = partition(ids, self._batch_size)

        calls = [(request, batch) for request in requests for batch in batches]
        outputs = await self._gather(calls)

        results = AggregateResults()
        collected: dict[str, list[float]] = {}
        for request in requests:
            if isinstance(request, CountRequest):
                results.counts[request.name] = 0
            else:
                collected[request.name] = []

        for (request, _batch), output in zip(calls, outputs):
            if isinstance(request, CountRequest):
                results.counts[request.name] += output
            else:
                collected[request.name].extend(output)

        for name, values in collected.items():
            results.scores[name] = ScoreSummary.from_values(values)

        logger.debug(
            "Aggregated %d ids in %d batches (%d requests, %d store calls)",
            len(ids),
            len(batches),
            len(requests),
            len(calls),
        )
        return results

    async def fetch_rows(
        self,
        student_ids: Iterable[str],
        columns: tuple[str, ...],
        predicates: tuple[Predicate, ...] = (),
    ) -> list[dict[str, Any]]:
        """Fetch matching rows for every student id, one store call per batch.

        Calls share the aggregator's concurrency bound and fail together.

        Raises:
            UpstreamError: If any batch call fails.
        """
        batches = partition(list(dict.fromkeys(student_ids)), self._batch_size)
        outputs = await gather_or_cancel(
            self._fetch_batch(batch, columns, predicates) for batch in batches
        )
        return [row for rows in outputs for row in rows]

    async def _fetch_batch(
        self,
        batch: tuple[str, ...],
        columns: tuple[str, ...],
        predicates: tuple[Predicate, ...],
    ) -> list[dict[str, Any]]:
        query = RowQuery(
            self._table,
            columns=columns,
            predicates=(In(self._id_column, batch),) + predicates,
        )
        async with self._semaphore:
            return await self._store.fetch(query)

    async def _gather(self, calls: list[tuple[AggregateRequest, tuple[str, ...]]]) -> list[Any]:
        return await gather_or_cancel(self._run(request, batch) for request, batch in calls)

    async def _run(self, request: AggregateRequest, batch: tuple[str, ...]) -> Any:
        query = RowQuery(
            self._table,
            predicates=(In(self._id_column, batch),) + request.predicates,
        )
        async with self._semaphore:
            if isinstance(request, CountRequest):
                return await self._store.count(query)

            rows = await self._store.fetch(
                RowQuery(query.table, columns=(request.column,), predicates=query.predicates)
            )

        values = []
        for row in rows:
            value = request.extract(row.get(request.column))
            if value is not None:
                values.append(value)
        return values
