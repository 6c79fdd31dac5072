"""
Parallel fan-out for metadata enumeration.

Each item gets its own task; per-item row lists are concatenated in
completion order. Every task is awaited before the first failure is
re-raised, so a failed request never leaves orphaned remote calls behind.
"""

import asyncio
from collections.abc import Awaitable, Callable, Iterable, Sequence
from typing import TypeVar

import structlog

T = TypeVar("T")
R = TypeVar("R")

logger = structlog.get_logger(__name__)


async def run_parallel(
    items: Iterable[T],
    worker: Callable[[T], Awaitable[Sequence[R]]],
    *,
    max_concurrency: int | None = None,
    description: str = "fanout",
) -> list[R]:
    """
    Run ``worker`` for every item concurrently and concatenate the results.

    Args:
        items: Work items (one task each)
        worker: Coroutine function returning the rows for one item
        max_concurrency: Optional cap on simultaneously running workers
        description: Label used in log events

    Returns:
        list: All rows, in completion order

    Raises:
        Exception: The first worker failure, unwrapped, once all workers finished
    """
    items = list(items)
    if not items:
        return []

    if max_concurrency is not None and max_concurrency < 1:
        raise ValueError("max_concurrency must be at least 1")

    # Per call so nested fan-outs never wait on a permit held by their parent
    semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency else None

    async def run_one(item: T) -> Sequence[R]:
        if semaphore is None:
            return await worker(item)
        async with semaphore:
            return await worker(item)

    tasks = [asyncio.create_task(run_one(item)) for item in items]

    results: list[R] = []
    first_error: BaseException | None = None
    try:
        for next_done in asyncio.as_completed(tasks):
            try:
                results.extend(await next_done)
            except asyncio.CancelledError:
                # A worker cancelled on its own counts as a failure; our own
                # cancellation is re-raised by the outer handler below.
                if asyncio.current_task().cancelling():
                    raise
                if first_error is None:
                    first_error = asyncio.CancelledError()
            except Exception as e:
                if first_error is None:
                    first_error = e
    except asyncio.CancelledError:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        logger.debug("fanout_cancelled", description=description, tasks=len(tasks))
        raise

    if first_error is not None:
        logger.debug(
            "fanout_failed",
            description=description,
            tasks=len(tasks),
            error=str(first_error),
        )
        raise first_error

    logger.debug(
        "fanout_completed", description=description, tasks=len(tasks), rows=len(results)
    )
    return results
