"""treesync: asyncio directory synchronization engine."""

from .core import (
    ActionType,
    CopyRequest,
    FileCopyAction,
    SymlinkAction,
    CopyPlan,
    CopyEvents,
    SyncResult,
    DiffPlanner,
    ActionExecutor,
    SyncEngine,
    copy,
    copy_bulk
)
from .concurrency import ConcurrentExecutor, WorkQueue, LockQueue, get_lock_queue
from .fs import (
    FileSystemError,
    NotFoundError,
    PermissionDeniedError,
    AlreadyExistsError,
    UnsupportedEntryKindError,
    GenericIOError,
    WalkEntry,
    walk,
    symlink
)

__version__ = "1.0.0"

__all__ = [
    "ActionType",
    "CopyRequest",
    "FileCopyAction",
    "SymlinkAction",
    "CopyPlan",
    "CopyEvents",
    "SyncResult",
    "DiffPlanner",
    "ActionExecutor",
    "SyncEngine",
    "copy",
    "copy_bulk",
    "ConcurrentExecutor",
    "WorkQueue",
    "LockQueue",
    "get_lock_queue",
    "FileSystemError",
    "NotFoundError",
    "PermissionDeniedError",
    "AlreadyExistsError",
    "UnsupportedEntryKindError",
    "GenericIOError",
    "WalkEntry",
    "walk",
    "symlink",
]
