"""Execution of planned copy actions."""

import os
from typing import List, Optional, Sequence

from .models import (
    ActionType,
    CopyAction,
    CopyEvents,
    DirectoryMode,
    FileCopyAction,
    SymlinkAction
)
from ..concurrency import ConcurrentExecutor
from ..config.settings import get_settings
from ..fs import primitives
from ..fs.errors import FileSystemError
from ..utils.logging import LoggerMixin, log_async_execution_time


class ActionExecutor(LoggerMixin):
    """Apply a plan: file copies first, then symlinks, then directory modes."""

    def __init__(
        self,
        max_concurrent: Optional[int] = None,
        chunk_size: Optional[int] = None
    ):
        """Initialize action executor.

        Args:
            max_concurrent: Concurrent file copies (defaults to settings)
            chunk_size: Copy buffer size in bytes (defaults to settings)
        """
        settings = get_settings()
        self.max_concurrent = max_concurrent or settings.sync.copy_concurrency
        self.chunk_size = chunk_size or settings.sync.chunk_size

    @log_async_execution_time
    async def execute(
        self,
        actions: List[CopyAction],
        events: Optional[CopyEvents] = None,
        directory_modes: Optional[Sequence[DirectoryMode]] = None
    ) -> None:
        """Execute *actions*.

        All file copies finish before the first symlink is created, because a
        link may point at a file copied by the same call. Directory modes are
        applied last, deepest directory first, so read-only directories are
        only locked once their contents are in place.

        Args:
            actions: Planned actions
            events: Progress callbacks
            directory_modes: ``(directory, mode)`` pairs from the plan

        Raises:
            FileSystemError: On the first failing action; remaining copies
                are cancelled and nothing is rolled back
        """
        events = events or CopyEvents()
        events.on_start(len(actions))

        file_actions = [a for a in actions if a.type == ActionType.FILE]
        symlink_actions = [a for a in actions if a.type == ActionType.SYMLINK]

        self.logger.info(
            "Executing plan",
            files=len(file_actions),
            symlinks=len(symlink_actions),
            directory_modes=len(directory_modes or ())
        )

        executor = ConcurrentExecutor(self.max_concurrent)

        async def _copy(action: FileCopyAction) -> None:
            await self._copy_file(action)
            events.on_progress(action.dest)

        async def _link(action: SymlinkAction) -> None:
            await self._create_symlink(action)
            events.on_progress(action.dest)

        await executor.map(file_actions, _copy)
        await executor.map(symlink_actions, _link)
        await self._apply_directory_modes(directory_modes or ())

        self.logger.info("Plan executed", actions=len(actions))

    async def _copy_file(self, action: FileCopyAction) -> None:
        try:
            await primitives.copy_file(action.src, action.dest, action.mode, self.chunk_size)
            await primitives.utime(action.dest, action.atime_ns, action.mtime_ns)
        except FileSystemError as e:
            self.logger.error("File copy failed", src=action.src, dest=action.dest, error=str(e))
            raise
        self.logger.debug("Copied file", src=action.src, dest=action.dest)

    async def _create_symlink(self, action: SymlinkAction) -> None:
        try:
            await primitives.unlink(action.dest)
            await primitives.symlink(action.linkname, action.dest)
        except FileSystemError as e:
            self.logger.error("Symlink creation failed", dest=action.dest, error=str(e))
            raise
        self.logger.debug("Created symlink", dest=action.dest, linkname=action.linkname)

    async def _apply_directory_modes(self, directory_modes: Sequence[DirectoryMode]) -> None:
        deepest_first = sorted(
            directory_modes,
            key=lambda item: os.path.normpath(item[0]).count(os.sep),
            reverse=True
        )
        for directory, mode in deepest_first:
            try:
                await primitives.chmod(directory, mode)
            except FileSystemError as e:
                self.logger.error("Directory mode failed", dest=directory, error=str(e))
                raise
            self.logger.debug("Applied directory mode", dest=directory, mode=oct(mode))
