"""Tree-diff planner producing copy actions for a synchronization call."""

import os
import stat
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Set

from .models import (
    CopyAction,
    CopyPlan,
    CopyRequest,
    DirectoryMode,
    FileCopyAction,
    SymlinkAction
)
from .tracking import CompletionTracker
from ..concurrency import WorkQueue
from ..config.settings import get_settings
from ..fs import primitives
from ..fs.errors import FileSystemError, UnsupportedEntryKindError
from ..utils.logging import get_logger, log_async_execution_time


Enqueue = Callable[[CopyRequest], None]


@dataclass
class _PlanState:
    """Accumulators owned by one synchronization call."""
    possible_extraneous: Set[str]
    actions: List[CopyAction] = field(default_factory=list)
    seen: Set[str] = field(default_factory=set)
    directory_modes: List[DirectoryMode] = field(default_factory=list)
    tracker: CompletionTracker = field(default_factory=CompletionTracker)


def _ancestors(path: str) -> Iterable[str]:
    current = path
    while current:
        yield current
        parent = os.path.dirname(current)
        if parent == current:
            break
        current = parent


class DiffPlanner:
    """Compare source and destination trees and plan the copies needed.

    Unchanged files (same size and modification time) and unchanged symlinks
    (same link text) produce no action. Destination entries with no source
    counterpart are collected while walking and deleted once the walk is
    complete.
    """

    def __init__(self, max_concurrent: Optional[int] = None):
        """Initialize diff planner.

        Args:
            max_concurrent: Concurrent comparisons (defaults to settings)
        """
        self.max_concurrent = max_concurrent or get_settings().sync.plan_concurrency
        self.logger = get_logger(self.__class__.__name__)

    async def plan(
        self,
        requests: List[CopyRequest],
        possible_extraneous: Optional[Iterable[str]] = None
    ) -> List[CopyAction]:
        """Plan *requests* and return the actions only.

        See :meth:`build_plan`.
        """
        copy_plan = await self.build_plan(requests, possible_extraneous)
        return copy_plan.actions

    @log_async_execution_time
    async def build_plan(
        self,
        requests: List[CopyRequest],
        possible_extraneous: Optional[Iterable[str]] = None
    ) -> CopyPlan:
        """Plan a synchronization call.

        Args:
            requests: Source/destination pairs; the list is emptied
            possible_extraneous: Destination paths to delete unless the walk
                proves them live

        Returns:
            CopyPlan with the actions to execute, the paths removed and the
            directory modes to apply once the actions are done

        Raises:
            FileSystemError: On the first failing comparison; nothing is
                removed in that case
        """
        state = _PlanState(possible_extraneous=set(possible_extraneous or ()))
        pending = list(requests)
        requests.clear()

        self.logger.info(
            "Planning synchronization",
            requests=len(pending),
            max_concurrent=self.max_concurrent
        )

        async def _handle(request: CopyRequest, enqueue: Enqueue) -> None:
            await self._process(request, state, enqueue)

        handled = await WorkQueue(self.max_concurrent).run(pending, _handle)
        removed = await self._remove_extraneous(state)

        self.logger.info(
            "Synchronization planned",
            entries_compared=handled,
            actions=len(state.actions),
            removed=len(removed)
        )

        return CopyPlan(
            actions=state.actions,
            removed=removed,
            directory_modes=state.directory_modes
        )

    async def _process(self, request: CopyRequest, state: _PlanState, enqueue: Enqueue) -> None:
        request_id = state.tracker.register(
            on_fresh=request.on_fresh,
            on_done=request.on_done,
            parent_id=request.parent_id
        )
        try:
            await self._build(request, request_id, state, enqueue)
        except FileSystemError as e:
            self.logger.error(
                "Failed to compare entry",
                src=request.src,
                dest=request.dest,
                error=str(e)
            )
            raise

    async def _build(
        self,
        request: CopyRequest,
        request_id: int,
        state: _PlanState,
        enqueue: Enqueue
    ) -> None:
        src, dest = request.src, request.dest
        state.seen.add(dest)

        src_stat = await primitives.lstat(src)
        src_files: List[str] = []
        if stat.S_ISDIR(src_stat.st_mode):
            src_files = await primitives.readdir(src)

        if await primitives.lexists(dest):
            dest_stat = await primitives.lstat(dest)

            both_files = stat.S_ISREG(src_stat.st_mode) and stat.S_ISREG(dest_stat.st_mode)
            both_folders = stat.S_ISDIR(src_stat.st_mode) and stat.S_ISDIR(dest_stat.st_mode)
            both_symlinks = stat.S_ISLNK(src_stat.st_mode) and stat.S_ISLNK(dest_stat.st_mode)

            if src_stat.st_mode != dest_stat.st_mode:
                if both_files:
                    await primitives.chmod(dest, src_stat.st_mode)
                else:
                    # kind or mode changed, start this entry over
                    self.logger.debug("Replacing mismatched destination", dest=dest)
                    state.possible_extraneous.discard(dest)
                    await primitives.unlink(dest)
                    await self._build(request, request_id, state, enqueue)
                    return

            if (both_files and src_stat.st_size == dest_stat.st_size
                    and src_stat.st_mtime_ns == dest_stat.st_mtime_ns):
                state.tracker.settle(request_id)
                return

            if both_symlinks and await primitives.readlink(src) == await primitives.readlink(dest):
                state.tracker.settle(request_id)
                return

            if both_folders:
                await self._collect_extraneous(dest, set(src_files), state)

        if stat.S_ISLNK(src_stat.st_mode):
            state.tracker.mark_fresh(request_id)
            linkname = await primitives.readlink(src)
            state.actions.append(SymlinkAction(dest=dest, linkname=linkname))
            self.logger.debug("Planned symlink", dest=dest, linkname=linkname)
            state.tracker.settle(request_id)

        elif stat.S_ISDIR(src_stat.st_mode):
            await primitives.mkdirp(dest)
            await self._prepare_directory(dest, src_stat.st_mode, state)

            state.seen.update(_ancestors(dest))

            children = [
                CopyRequest(
                    src=os.path.join(src, name),
                    dest=os.path.join(dest, name),
                    parent_id=request_id
                )
                for name in src_files
            ]
            state.tracker.expect_children(request_id, len(children))
            for child in children:
                enqueue(child)

        elif stat.S_ISREG(src_stat.st_mode):
            state.tracker.mark_fresh(request_id)
            state.actions.append(FileCopyAction(
                src=src,
                dest=dest,
                atime_ns=src_stat.st_atime_ns,
                mtime_ns=src_stat.st_mtime_ns,
                mode=src_stat.st_mode
            ))
            self.logger.debug("Planned file copy", src=src, dest=dest)
            state.tracker.settle(request_id)

        else:
            raise UnsupportedEntryKindError("plan", src, "unsupported entry kind")

    async def _prepare_directory(self, dest: str, src_mode: int, state: _PlanState) -> None:
        # the owner keeps rwx until the executor has written the children;
        # bits the owner lacks in the source are restored after execution
        mode = stat.S_IMODE(src_mode)
        working_mode = mode | stat.S_IRWXU

        dest_stat = await primitives.lstat(dest)
        if stat.S_IMODE(dest_stat.st_mode) != working_mode:
            await primitives.chmod(dest, working_mode)

        if working_mode != mode:
            state.directory_modes.append((dest, mode))
            self.logger.debug("Deferred directory mode", dest=dest, mode=oct(mode))

    async def _collect_extraneous(self, dest: str, src_names: Set[str], state: _PlanState) -> None:
        for name in await primitives.readdir(dest):
            if name in src_names:
                continue

            loc = os.path.join(dest, name)
            state.possible_extraneous.add(loc)

            # seed one level below an extraneous directory, no deeper
            if stat.S_ISDIR((await primitives.lstat(loc)).st_mode):
                for child in await primitives.readdir(loc):
                    state.possible_extraneous.add(os.path.join(loc, child))

    async def _remove_extraneous(self, state: _PlanState) -> List[str]:
        removed: List[str] = []
        for loc in sorted(state.possible_extraneous):
            if loc in state.seen:
                continue

            await primitives.unlink(loc)
            removed.append(loc)
            self.logger.debug("Removed extraneous path", path=loc)

        return removed
