"""Filesystem layer: primitives, errors, walking and symlinks."""

from .errors import (
    FileSystemError,
    NotFoundError,
    PermissionDeniedError,
    AlreadyExistsError,
    UnsupportedEntryKindError,
    GenericIOError,
    translate_os_error
)
from .walker import WalkEntry, walk
from .symlink import symlink
from .files import (
    read_file,
    read_file_raw,
    read_file_any,
    read_json,
    write_file,
    find
)

__all__ = [
    # Errors
    "FileSystemError",
    "NotFoundError",
    "PermissionDeniedError",
    "AlreadyExistsError",
    "UnsupportedEntryKindError",
    "GenericIOError",
    "translate_os_error",

    # Walking and linking
    "WalkEntry",
    "walk",
    "symlink",

    # File helpers
    "read_file",
    "read_file_raw",
    "read_file_any",
    "read_json",
    "write_file",
    "find",
]
