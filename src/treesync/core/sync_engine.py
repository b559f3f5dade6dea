"""Core sync engine tying the planner and the executor together."""

import time
from typing import Iterable, List, Optional

from .executor import ActionExecutor
from .models import CopyEvents, CopyRequest, SyncResult
from .planner import DiffPlanner
from ..utils.logging import get_logger


class SyncEngine:
    """Make destination trees identical to source trees.

    The engine does not serialise overlapping calls. Callers that may
    synchronise the same destination concurrently should hold the
    destination's key in a :class:`~treesync.concurrency.LockQueue`.
    """

    def __init__(
        self,
        planner: Optional[DiffPlanner] = None,
        executor: Optional[ActionExecutor] = None
    ):
        """Initialize sync engine.

        Args:
            planner: Diff planner (a default one is created if omitted)
            executor: Action executor (a default one is created if omitted)
        """
        self.planner = planner or DiffPlanner()
        self.executor = executor or ActionExecutor()
        self.logger = get_logger(self.__class__.__name__)

    async def copy_bulk(
        self,
        requests: List[CopyRequest],
        events: Optional[CopyEvents] = None,
        possible_extraneous: Optional[Iterable[str]] = None
    ) -> SyncResult:
        """Synchronise every request in one call.

        Args:
            requests: Source/destination pairs; the list is emptied
            events: Progress callbacks for the execution phase
            possible_extraneous: Extra destination paths to delete unless
                they turn out to be live

        Returns:
            SyncResult describing what was done

        Raises:
            FileSystemError: On the first failure; already applied changes
                are kept
        """
        start_time = time.perf_counter()
        total_requests = len(requests)

        copy_plan = await self.planner.build_plan(requests, possible_extraneous)
        await self.executor.execute(copy_plan.actions, events, copy_plan.directory_modes)

        result = SyncResult(
            actions_planned=len(copy_plan.actions),
            files_copied=len(copy_plan.file_actions),
            symlinks_created=len(copy_plan.symlink_actions),
            removed=copy_plan.removed,
            duration=time.perf_counter() - start_time
        )

        self.logger.info(
            "Synchronization completed",
            requests=total_requests,
            files_copied=result.files_copied,
            symlinks_created=result.symlinks_created,
            removed=len(result.removed),
            duration=f"{result.duration:.2f}s"
        )

        return result

    async def copy(self, src: str, dest: str) -> SyncResult:
        """Synchronise a single *src* into *dest*."""
        return await self.copy_bulk([CopyRequest(src=src, dest=dest)])


async def copy_bulk(
    requests: List[CopyRequest],
    events: Optional[CopyEvents] = None,
    possible_extraneous: Optional[Iterable[str]] = None
) -> SyncResult:
    """Synchronise *requests* with a default engine."""
    return await SyncEngine().copy_bulk(requests, events, possible_extraneous)


async def copy(src: str, dest: str) -> SyncResult:
    """Synchronise *src* into *dest* with a default engine."""
    return await SyncEngine().copy(src, dest)
