"""Error taxonomy for filesystem primitive failures."""

import errno as errno_codes
import os
from typing import Optional


class FileSystemError(Exception):
    """Base class for failures of a filesystem primitive.

    Attributes:
        operation: Name of the primitive that failed (``lstat``, ``readdir``...)
        path: Path the primitive was applied to
        errno: Underlying errno value, if the failure came from the OS
    """

    def __init__(
        self,
        operation: str,
        path: str,
        reason: str,
        errno: Optional[int] = None
    ):
        """Initialize the error with the failing operation and path."""
        super().__init__(f"{operation} failed for {path}: {reason}")
        self.operation = operation
        self.path = path
        self.reason = reason
        self.errno = errno


class NotFoundError(FileSystemError):
    """Raised when a source or required destination entry is missing."""
    pass


class PermissionDeniedError(FileSystemError):
    """Raised when the OS refuses access to an entry."""
    pass


class AlreadyExistsError(FileSystemError):
    """Raised when an entry being created already exists."""
    pass


class UnsupportedEntryKindError(FileSystemError):
    """Raised for devices, FIFOs, sockets and other entries that cannot be copied."""
    pass


class GenericIOError(FileSystemError):
    """Raised for any other primitive failure."""
    pass


_ERRNO_TO_ERROR = {
    errno_codes.ENOENT: NotFoundError,
    errno_codes.ENOTDIR: NotFoundError,
    errno_codes.EACCES: PermissionDeniedError,
    errno_codes.EPERM: PermissionDeniedError,
    errno_codes.EEXIST: AlreadyExistsError,
}


def translate_os_error(exc: OSError, operation: str, path: str) -> FileSystemError:
    """Map an ``OSError`` onto the treesync error taxonomy.

    Args:
        exc: The error raised by the OS call
        operation: Name of the primitive being performed
        path: Path the primitive was applied to

    Returns:
        FileSystemError subclass instance; callers raise it ``from exc``
    """
    error_class = _ERRNO_TO_ERROR.get(exc.errno, GenericIOError)
    reason = exc.strerror or (os.strerror(exc.errno) if exc.errno else str(exc))
    return error_class(operation, path, reason, errno=exc.errno)
