"""Tests for the bounded batch executor."""
import asyncio

import pytest

from agent_bwstoolkit.secrets.domains.batch import BATCH_SIZE, BatchOutcome, run_in_batches


class Tracker:
    """Records concurrency and start order of fake operations."""

    def __init__(self, fail=(), delays=None):
        self.fail = set(fail)
        self.delays = delays or {}
        self.in_flight = 0
        self.peak = 0
        self.started = []
        self.finished = []

    async def operation(self, item):
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        self.started.append((item, list(self.finished)))
        try:
            await asyncio.sleep(self.delays.get(item, 0.01))
            if item in self.fail:
                raise RuntimeError(f"item {item} failed")
            return item * 10
        finally:
            self.in_flight -= 1
            self.finished.append(item)


class TestRunInBatches:
    """Test suite for run_in_batches."""

    @pytest.mark.asyncio
    async def test_twelve_items_batch_of_five(self):
        tracker = Tracker(fail={3})
        items = list(range(1, 13))

        outcomes = await run_in_batches(items, tracker.operation, batch_size=5)

        assert tracker.peak == 5
        assert len(outcomes) == 12
        assert [o.item for o in outcomes] == items
        assert sorted(item for item, _ in tracker.started) == items
        assert [o.ok for o in outcomes] == [i != 3 for i in items]
        assert outcomes[2].reason == "item 3 failed"
        assert outcomes[3].result == 40

    @pytest.mark.asyncio
    async def test_next_chunk_waits_for_slowest_item(self):
        # Item 1 is far slower than the rest of its chunk
        tracker = Tracker(delays={1: 0.05})

        await run_in_batches(list(range(1, 8)), tracker.operation, batch_size=5)

        for item, finished_before in tracker.started:
            if item > 5:
                assert set(range(1, 6)) <= set(finished_before)

    @pytest.mark.asyncio
    async def test_failure_does_not_cancel_siblings(self):
        tracker = Tracker(fail={1}, delays={1: 0.001, 2: 0.03})

        outcomes = await run_in_batches([1, 2], tracker.operation, batch_size=5)

        assert outcomes[0].ok is False
        assert outcomes[1].ok is True
        assert outcomes[1].result == 20

    @pytest.mark.asyncio
    async def test_every_item_failing_still_attempts_all(self):
        tracker = Tracker(fail=set(range(1, 8)))

        outcomes = await run_in_batches(list(range(1, 8)), tracker.operation, batch_size=3)

        assert len(tracker.started) == 7
        assert not any(o.ok for o in outcomes)
        assert all(isinstance(o.error, RuntimeError) for o in outcomes)

    @pytest.mark.asyncio
    async def test_empty_input(self):
        tracker = Tracker()
        assert await run_in_batches([], tracker.operation) == []
        assert tracker.started == []

    @pytest.mark.asyncio
    async def test_batch_size_one_is_sequential(self):
        tracker = Tracker()
        await run_in_batches([1, 2, 3], tracker.operation, batch_size=1)
        assert tracker.peak == 1

    @pytest.mark.asyncio
    async def test_invalid_batch_size(self):
        tracker = Tracker()
        with pytest.raises(ValueError):
            await run_in_batches([1], tracker.operation, batch_size=0)

    def test_default_batch_size(self):
        assert BATCH_SIZE == 5


class TestBatchOutcome:
    """Test suite for BatchOutcome."""

    def test_reason_empty_on_success(self):
        assert BatchOutcome(item="a", ok=True, result=1).reason == ""

    def test_reason_falls_back_to_exception_type(self):
        assert BatchOutcome(item="a", ok=False, error=TimeoutError()).reason == "TimeoutError"
