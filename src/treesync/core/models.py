"""Data structures for synchronization requests, actions and results."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Tuple, Union


Callback = Callable[[], None]


def _noop(*args) -> None:
    pass


class ActionType(str, Enum):
    """Kind of planned copy action."""
    FILE = "file"
    SYMLINK = "symlink"


@dataclass
class CopyRequest:
    """One source/destination pair to synchronise.

    Attributes:
        src: Source path (file, directory or symlink)
        dest: Destination path
        on_fresh: Called once when this entry or a descendant needs copying
        on_done: Called once when this entry and all its descendants are classified
        parent_id: Identifier of the directory request that spawned this one
    """
    src: str
    dest: str
    on_fresh: Optional[Callback] = None
    on_done: Optional[Callback] = None
    parent_id: Optional[int] = None


@dataclass(frozen=True)
class FileCopyAction:
    """A regular file to stream-copy, with the metadata to restore."""
    src: str
    dest: str
    atime_ns: int
    mtime_ns: int
    mode: int
    type: ActionType = field(default=ActionType.FILE, init=False)


@dataclass(frozen=True)
class SymlinkAction:
    """A symlink to create at ``dest`` with the verbatim text ``linkname``."""
    dest: str
    linkname: str
    type: ActionType = field(default=ActionType.SYMLINK, init=False)


CopyAction = Union[FileCopyAction, SymlinkAction]

# (destination directory, permission bits)
DirectoryMode = Tuple[str, int]


@dataclass
class CopyPlan:
    """Planned actions plus the extraneous paths removed while planning.

    ``directory_modes`` holds source permission bits for destination
    directories that stay owner-writable until every action has run.
    """
    actions: List[CopyAction] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    directory_modes: List[DirectoryMode] = field(default_factory=list)

    @property
    def file_actions(self) -> List[FileCopyAction]:
        """File copy actions, in plan order."""
        return [a for a in self.actions if a.type == ActionType.FILE]

    @property
    def symlink_actions(self) -> List[SymlinkAction]:
        """Symlink actions, in plan order."""
        return [a for a in self.actions if a.type == ActionType.SYMLINK]


@dataclass
class CopyEvents:
    """Progress callbacks for executing a plan."""
    on_start: Callable[[int], None] = _noop
    on_progress: Callable[[str], None] = _noop


@dataclass
class SyncResult:
    """Result of a synchronization call."""

    actions_planned: int
    files_copied: int
    symlinks_created: int
    removed: List[str] = field(default_factory=list)
    duration: Optional[float] = None

    @property
    def changed(self) -> bool:
        """True if anything was copied, linked or removed."""
        return bool(self.actions_planned or self.removed)
