# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for batched aggregation."""

import asyncio
from unittest.mock import MagicMock

import pytest

from src.core.exceptions import UpstreamError
from src.domains.statistics import (
    BatchedAggregator,
    CountRequest,
    ScoreRequest,
    ScoreSummary,
)
from src.domains.statistics.aggregator import partition
from src.infrastructure.store import Equals
from src.utils.concurrency import gather_or_cancel

COMPLETED = (Equals("status", "completed"),)

REQUESTS = [
    CountRequest("total"),
    CountRequest("completed", COMPLETED),
    ScoreRequest("scores", COMPLETED),
]


def many_assessments(student_count: int) -> dict[str, list[dict]]:
    """Two assessments per student, every third one in progress."""
    rows = []
    for i in range(student_count):
        for j in range(2):
            n = i * 2 + j
            status = "in_progress" if n % 3 == 0 else "completed"
            scores = {"total_score": (n * 7) % 100} if n % 5 else {"final_score": n % 50 + 0.5}
            rows.append({"id": f"a{n}", "user_id": f"s{i}", "status": status, "raw_scores": scores})
    return {"assessments": rows}


class TestPartition:
    """Tests for id partitioning."""

    def test_splits_in_order(self):
        """Test consecutive batches with a short tail."""
        assert partition(["a", "b", "c", "d", "e"], 2) == [("a", "b"), ("c", "d"), ("e",)]

    def test_empty(self):
        """Test that no ids produce no batches."""
        assert partition([], 30) == []

    def test_rejects_non_positive_size(self):
        """Test batch size validation."""
        with pytest.raises(ValueError):
            partition(["a"], 0)


class TestScoreSummary:
    """Tests for ScoreSummary."""

    def test_from_values(self):
        """Test avg rounding and extremes."""
        summary = ScoreSummary.from_values([1, 2, 2])

        assert summary == ScoreSummary(count=3, avg=1.67, min=1, max=2)

    def test_no_values(self):
        """Test that an empty list has no avg/min/max."""
        assert ScoreSummary.from_values([]) == ScoreSummary()


class TestBatchedAggregator:
    """Tests for BatchedAggregator."""

    @pytest.mark.asyncio
    async def test_counts_and_scores(self, make_store):
        """Test merged counts and score summary."""
        store = make_store(
            {
                "assessments": [
                    {"id": "a1", "user_id": "s1", "status": "completed", "raw_scores": {"total_score": 10}},
                    {"id": "a2", "user_id": "s2", "status": "completed", "raw_scores": {"total_score": 20}},
                    {"id": "a3", "user_id": "s3", "status": "in_progress", "raw_scores": None},
                    {"id": "a4", "user_id": "other", "status": "completed", "raw_scores": {"total_score": 99}},
                ]
            }
        )
        aggregator = BatchedAggregator(store, batch_size=2)

        results = await aggregator.aggregate(["s1", "s2", "s3"], REQUESTS)

        assert results.count("total") == 3
        assert results.count("completed") == 2
        assert results.score("scores") == ScoreSummary(count=2, avg=15.0, min=10.0, max=20.0)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("batch_size", [1, 7, 30, 95, 500])
    async def test_batch_size_does_not_change_results(self, make_store, batch_size):
        """Test that any batch size merges to the unbatched result."""
        ids = [f"s{i}" for i in range(95)]
        reference = await BatchedAggregator(make_store(many_assessments(95)), batch_size=1000).aggregate(
            ids, REQUESTS
        )

        results = await BatchedAggregator(make_store(many_assessments(95)), batch_size=batch_size).aggregate(
            ids, REQUESTS
        )

        assert results == reference
        assert results.count("total") == 190

    @pytest.mark.asyncio
    async def test_batches_bound_id_lists(self, make_store):
        """Test that no store call carries more than batch_size ids."""
        store = make_store(many_assessments(65))
        aggregator = BatchedAggregator(store, batch_size=30)

        await aggregator.aggregate([f"s{i}" for i in range(65)], REQUESTS)

        queries = store.calls_on("assessments")
        assert len(queries) == 3 * 3
        assert max(len(q.predicates[0].values) for q in queries) == 30

    @pytest.mark.asyncio
    async def test_empty_ids_skip_store(self, make_store):
        """Test that no ids means zero counts and no store calls."""
        store = make_store(many_assessments(3))

        results = await BatchedAggregator(store).aggregate([], REQUESTS)

        assert results.count("total") == 0
        assert results.score("scores") == ScoreSummary()
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_duplicate_ids_are_ignored(self, make_store):
        """Test that repeated ids are counted once."""
        store = make_store(many_assessments(3))
        aggregator = BatchedAggregator(store, batch_size=2)

        duplicated = await aggregator.aggregate(["s0", "s1", "s0", "s1"], REQUESTS)
        unique = await aggregator.aggregate(["s0", "s1"], REQUESTS)

        assert duplicated == unique

    @pytest.mark.asyncio
    async def test_duplicate_request_names_rejected(self, make_store):
        """Test that request names must be unique."""
        aggregator = BatchedAggregator(make_store())

        with pytest.raises(ValueError, match="Duplicate"):
            await aggregator.aggregate(["s1"], [CountRequest("n"), ScoreRequest("n")])

    @pytest.mark.asyncio
    async def test_non_numeric_scores_are_skipped(self, make_store):
        """Test that rows without a usable score do not count toward avg."""
        store = make_store(
            {
                "assessments": [
                    {"id": "a1", "user_id": "s1", "status": "completed", "raw_scores": {"total_score": "n/a"}},
                    {"id": "a2", "user_id": "s1", "status": "completed", "raw_scores": {"total_score": True}},
                    {"id": "a3", "user_id": "s1", "status": "completed", "raw_scores": {"final_score": 42}},
                ]
            }
        )

        results = await BatchedAggregator(store).aggregate(["s1"], REQUESTS)

        assert results.count("completed") == 3
        assert results.score("scores") == ScoreSummary(count=1, avg=42.0, min=42.0, max=42.0)

    @pytest.mark.asyncio
    async def test_store_failure_fails_whole_aggregate(self, make_store):
        """Test that one failing batch fails the aggregate."""
        store = make_store(many_assessments(10), fail_on=["assessments"])

        with pytest.raises(UpstreamError):
            await BatchedAggregator(store, batch_size=3).aggregate(
                [f"s{i}" for i in range(10)], REQUESTS
            )

    @pytest.mark.asyncio
    async def test_failure_cancels_pending_calls(self):
        """Test that in-flight calls are cancelled when one call fails."""
        cancelled = []

        async def count(query):
            ids = query.predicates[0].values
            if "bad" in ids:
                await asyncio.sleep(0)
                raise UpstreamError("Failed to count assessments")
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.append(ids)
                raise
            return 1

        store = MagicMock()
        store.count = count
        aggregator = BatchedAggregator(store, batch_size=1)

        with pytest.raises(UpstreamError):
            await aggregator.aggregate(["bad", "x", "y"], [CountRequest("total")])

        assert sorted(cancelled) == [("x",), ("y",)]

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self):
        """Test that at most max_concurrency store calls run at once."""
        in_flight = 0
        peak = 0

        async def count(query):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return 1

        store = MagicMock()
        store.count = count
        aggregator = BatchedAggregator(store, batch_size=1, max_concurrency=2)

        results = await aggregator.aggregate([f"s{i}" for i in range(6)], [CountRequest("total")])

        assert results.count("total") == 6
        assert peak == 2


class TestGatherOrCancel:
    """Tests for gather_or_cancel."""

    @pytest.mark.asyncio
    async def test_preserves_order(self):
        """Test that results follow input order."""

        async def value(v, delay):
            await asyncio.sleep(delay)
            return v

        assert await gather_or_cancel([value("a", 0.02), value("b", 0)]) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_empty(self):
        """Test that no coroutines give no results."""
        assert await gather_or_cancel([]) == []

    @pytest.mark.asyncio
    async def test_failure_cancels_siblings(self):
        """Test that pending coroutines are cancelled before the error propagates."""
        finished = []

        async def fail():
            raise UpstreamError("Failed to read colleges")

        async def slow(name):
            await asyncio.sleep(0.2)
            finished.append(name)

        with pytest.raises(UpstreamError):
            await gather_or_cancel([fail(), slow("majors"), slow("classes")])

        await asyncio.sleep(0.3)
        assert finished == []


class TestFetchRows:
    """Tests for batched row reads."""

    @pytest.mark.asyncio
    async def test_rows_from_every_batch(self, make_store):
        """Test that rows of all batches are returned with one call per batch."""
        store = make_store(many_assessments(5))
        aggregator = BatchedAggregator(store, batch_size=2)

        rows = await aggregator.fetch_rows(
            [f"s{i}" for i in range(5)] + ["s0"],
            columns=("user_id", "status"),
            predicates=COMPLETED,
        )

        assert len(store.calls_on("assessments")) == 3
        assert len(rows) == sum(1 for r in many_assessments(5)["assessments"] if r["status"] == "completed")
        assert set(rows[0]) == {"user_id", "status"}

    @pytest.mark.asyncio
    async def test_reads_share_concurrency_bound(self):
        """Test that batch reads never exceed max_concurrency."""
        in_flight = 0
        peak = 0

        async def fetch(query):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return [{"user_id": user_id} for user_id in query.predicates[0].values]

        store = MagicMock()
        store.fetch = fetch
        aggregator = BatchedAggregator(store, batch_size=1, max_concurrency=1)

        rows = await aggregator.fetch_rows([f"s{i}" for i in range(4)], columns=("user_id",))

        assert [r["user_id"] for r in rows] == ["s0", "s1", "s2", "s3"]
        assert peak == 1
