"""Recursive directory listing into a flat manifest."""

import os
import stat
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from . import primitives


@dataclass(frozen=True)
class WalkEntry:
    """One entry of a walk manifest."""

    relative: str
    absolute: str
    basename: str
    mtime: float

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        return {
            "relative": self.relative,
            "absolute": self.absolute,
            "basename": self.basename,
            "mtime": self.mtime,
        }


async def walk(
    directory: str,
    relative_dir: Optional[str] = None,
    ignore_basenames: Optional[Iterable[str]] = None
) -> List[WalkEntry]:
    """List *directory* recursively, depth-first.

    Each directory entry precedes its descendants and siblings are visited in
    sorted order. Entries whose base name is in *ignore_basenames* are skipped
    together with everything below them.

    Args:
        directory: Directory to list
        relative_dir: Prefix for the ``relative`` paths of the entries
        ignore_basenames: Base names to leave out

    Returns:
        Flat list of WalkEntry objects

    Raises:
        FileSystemError: If any listing or stat call fails
    """
    ignored = frozenset(ignore_basenames or ())
    files: List[WalkEntry] = []

    for name in await primitives.readdir(directory):
        if name in ignored:
            continue

        relative = os.path.join(relative_dir, name) if relative_dir else name
        loc = os.path.join(directory, name)
        st = await primitives.lstat(loc)

        files.append(WalkEntry(
            relative=relative,
            absolute=loc,
            basename=name,
            mtime=st.st_mtime,
        ))

        if stat.S_ISDIR(st.st_mode):
            files.extend(await walk(loc, relative, ignored))

    return files
