"""Bounded-concurrency runners for async work."""

import asyncio
from typing import Awaitable, Callable, Iterable, List, Optional, Sequence, TypeVar

from ..utils.logging import get_logger


T = TypeVar('T')
R = TypeVar('R')


async def _cancel_all(tasks: Iterable[asyncio.Future]) -> None:
    tasks = [task for task in tasks if not task.done()]
    for task in tasks:
        task.cancel()
    if tasks:
        await asyncio.gather(*tasks, return_exceptions=True)


def _first_failure(tasks: Sequence[asyncio.Future]) -> Optional[BaseException]:
    for task in tasks:
        if task.done() and not task.cancelled() and task.exception() is not None:
            return task.exception()
    return None


class ConcurrentExecutor:
    """Run one coroutine per item with at most ``max_concurrent`` in flight."""

    def __init__(self, max_concurrent: int = 4):
        """Initialize concurrent executor.

        Args:
            max_concurrent: Maximum concurrent operations
        """
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")

        self.max_concurrent = max_concurrent
        self.logger = get_logger(self.__class__.__name__)

    async def map(
        self,
        items: Sequence[T],
        func: Callable[[T], Awaitable[R]]
    ) -> List[R]:
        """Apply *func* to every item concurrently.

        Args:
            items: Items to process
            func: Async callable applied to each item

        Returns:
            Results in the order of *items*

        Raises:
            Exception: The first failure; outstanding calls are cancelled
        """
        if not items:
            return []

        semaphore = asyncio.Semaphore(self.max_concurrent)

        async def _guarded(item: T) -> R:
            async with semaphore:
                return await func(item)

        tasks = [asyncio.ensure_future(_guarded(item)) for item in items]
        try:
            await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
            failure = _first_failure(tasks)
            if failure is not None:
                raise failure
        finally:
            await _cancel_all(tasks)

        self.logger.debug(
            "Batch execution completed",
            total_tasks=len(tasks),
            max_concurrent=self.max_concurrent
        )

        return [task.result() for task in tasks]


class WorkQueue:
    """Drain a queue that grows while it is being processed.

    ``max_concurrent`` workers take items off the queue; a handler may push
    follow-up items, which are picked up by whichever worker is free. The run
    finishes when every item, including the follow-ups, has been handled.
    """

    def __init__(self, max_concurrent: int = 4):
        """Initialize work queue.

        Args:
            max_concurrent: Number of workers draining the queue
        """
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")

        self.max_concurrent = max_concurrent
        self.logger = get_logger(self.__class__.__name__)

    async def run(
        self,
        initial: Iterable[T],
        handler: Callable[[T, Callable[[T], None]], Awaitable[None]]
    ) -> int:
        """Handle *initial* and everything the handler enqueues.

        Args:
            initial: Items to start with
            handler: Async callable receiving an item and an ``enqueue`` function

        Returns:
            Number of items handled

        Raises:
            Exception: The first handler failure; other workers are cancelled
        """
        queue: asyncio.Queue = asyncio.Queue()
        for item in initial:
            queue.put_nowait(item)

        if queue.empty():
            return 0

        handled = 0

        async def _worker() -> None:
            nonlocal handled
            while True:
                item = await queue.get()
                try:
                    await handler(item, queue.put_nowait)
                    handled += 1
                finally:
                    queue.task_done()

        workers = [asyncio.ensure_future(_worker()) for _ in range(self.max_concurrent)]
        joiner = asyncio.ensure_future(queue.join())
        try:
            await asyncio.wait([joiner, *workers], return_when=asyncio.FIRST_COMPLETED)
            failure = _first_failure(workers)
            if failure is not None:
                raise failure
        finally:
            await _cancel_all([joiner, *workers])

        self.logger.debug("Work queue drained", handled=handled)
        return handled
