"""Core synchronization logic package."""

from .models import (
    ActionType,
    CopyRequest,
    FileCopyAction,
    SymlinkAction,
    CopyAction,
    DirectoryMode,
    CopyPlan,
    CopyEvents,
    SyncResult
)
from .tracking import CompletionTracker
from .planner import DiffPlanner
from .executor import ActionExecutor
from .sync_engine import SyncEngine, copy, copy_bulk

__all__ = [
    "ActionType",
    "CopyRequest",
    "FileCopyAction",
    "SymlinkAction",
    "CopyAction",
    "DirectoryMode",
    "CopyPlan",
    "CopyEvents",
    "SyncResult",
    "CompletionTracker",
    "DiffPlanner",
    "ActionExecutor",
    "SyncEngine",
    "copy",
    "copy_bulk",
]
