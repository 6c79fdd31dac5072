"""Tests for parallel fan-out."""

import asyncio

import pytest

from libs.bigquery_access.errors import RemoteCommunicationError
from libs.bigquery_access.fanout import run_parallel


class TestRunParallel:
    """Test concatenation, failure and cancellation behaviour."""

    @pytest.mark.asyncio
    async def test_empty_input(self):
        calls = []

        async def worker(item):
            calls.append(item)
            return [item]

        assert await run_parallel([], worker) == []
        assert calls == []

    @pytest.mark.asyncio
    async def test_concatenates_all_results(self):
        async def worker(item):
            await asyncio.sleep(0.01 * (3 - item))
            return [f"{item}-a", f"{item}-b"]

        results = await run_parallel(range(3), worker)
        assert sorted(results) == ["0-a", "0-b", "1-a", "1-b", "2-a", "2-b"]

    @pytest.mark.asyncio
    async def test_runs_concurrently(self):
        running = 0
        peak = 0

        async def worker(item):
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.02)
            running -= 1
            return [item]

        await run_parallel(range(10), worker)
        assert peak == 10

    @pytest.mark.asyncio
    async def test_max_concurrency(self):
        running = 0
        peak = 0

        async def worker(item):
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1
            return [item]

        results = await run_parallel(range(10), worker, max_concurrency=3)
        assert peak == 3
        assert sorted(results) == list(range(10))

    @pytest.mark.asyncio
    async def test_first_error_raised_after_all_tasks_finish(self):
        finished = []

        async def worker(item):
            if item == 0:
                raise RemoteCommunicationError("boom")
            await asyncio.sleep(0.02)
            finished.append(item)
            return [item]

        with pytest.raises(RemoteCommunicationError, match="boom"):
            await run_parallel(range(4), worker)

        # Siblings are not cancelled when one task fails
        assert sorted(finished) == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_error_is_not_wrapped(self):
        async def worker(item):
            raise KeyError(item)

        with pytest.raises(KeyError):
            await run_parallel([1], worker)

    @pytest.mark.asyncio
    async def test_nested_fanout_with_concurrency_limit(self):
        async def inner(item):
            await asyncio.sleep(0)
            return [item]

        async def outer(group):
            return await run_parallel(
                [f"{group}.{i}" for i in range(3)], inner, max_concurrency=1
            )

        results = await run_parallel(range(3), outer, max_concurrency=1)
        assert len(results) == 9

    @pytest.mark.asyncio
    async def test_caller_cancellation_cancels_workers(self):
        cancelled = []

        async def worker(item):
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.append(item)
                raise
            return [item]

        task = asyncio.create_task(run_parallel(range(3), worker))
        await asyncio.sleep(0.01)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert sorted(cancelled) == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_invalid_max_concurrency(self):
        async def worker(item):
            return [item]

        with pytest.raises(ValueError):
            await run_parallel([1], worker, max_concurrency=0)
