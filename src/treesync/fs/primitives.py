"""Async filesystem primitives backed by the event loop's thread pool."""

import asyncio
import contextlib
import os
import shutil
import stat
import tempfile
from typing import Any, Callable, List

from .errors import translate_os_error


DEFAULT_CHUNK_SIZE = 1024 * 1024


async def _run(operation: str, path: str, func: Callable[..., Any], *args) -> Any:
    """Run a blocking OS call in the default executor, translating failures."""
    loop = asyncio.get_running_loop()
    try:
        return await loop.run_in_executor(None, func, *args)
    except OSError as e:
        failed_path = e.filename if isinstance(e.filename, str) else path
        raise translate_os_error(e, operation, failed_path) from e


def _readdir(path: str) -> List[str]:
    return sorted(os.listdir(path))


def _realpath(path: str) -> str:
    return os.path.realpath(path, strict=True)


def _mkdirp(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def _remove_tree(path: str) -> None:
    try:
        st = os.lstat(path)
    except FileNotFoundError:
        return

    if not stat.S_ISDIR(st.st_mode):
        os.unlink(path)
        return

    if getattr(st, "st_reparse_tag", 0) == getattr(stat, "IO_REPARSE_TAG_MOUNT_POINT", None):
        # junctions are removed as links, never descended into
        os.rmdir(path)
        return

    # read-only directories are opened up so their entries can be removed
    if stat.S_IMODE(st.st_mode) & stat.S_IRWXU != stat.S_IRWXU:
        os.chmod(path, stat.S_IMODE(st.st_mode) | stat.S_IRWXU)
    for name in os.listdir(path):
        _remove_tree(os.path.join(path, name))
    os.rmdir(path)


def _utime(path: str, atime_ns: int, mtime_ns: int) -> None:
    os.utime(path, ns=(atime_ns, mtime_ns))


def _symlink(target: str, path: str, target_is_directory: bool) -> None:
    os.symlink(target, path, target_is_directory=target_is_directory)


def _junction(target: str, path: str) -> None:
    import _winapi
    _winapi.CreateJunction(target, path)


def _write_stream(src: str, dest: str, mode: int, chunk_size: int) -> None:
    directory, name = os.path.split(dest)
    fd, tmp = tempfile.mkstemp(prefix=f".{name}.", suffix=".tmp", dir=directory or ".")
    try:
        with open(fd, "wb", closefd=True) as writer, open(src, "rb") as reader:
            shutil.copyfileobj(reader, writer, chunk_size)
        os.chmod(tmp, stat.S_IMODE(mode))
        os.replace(tmp, dest)
    except OSError as e:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(tmp)
        if e.filename != tmp:
            raise
        # report the destination rather than the temporary name
        raise OSError(e.errno, e.strerror, dest) from e


async def lstat(path: str) -> os.stat_result:
    """Stat *path* without following a trailing symlink."""
    return await _run("lstat", path, os.lstat, path)


async def stat_path(path: str) -> os.stat_result:
    """Stat *path*, following symlinks."""
    return await _run("stat", path, os.stat, path)


async def readdir(path: str) -> List[str]:
    """List the names in directory *path*, sorted."""
    return await _run("readdir", path, _readdir, path)


async def readlink(path: str) -> str:
    """Return the verbatim text of symlink *path*."""
    return await _run("readlink", path, os.readlink, path)


async def realpath(path: str) -> str:
    """Resolve every symlink in *path*; the target must exist."""
    return await _run("realpath", path, _realpath, path)


async def exists(path: str) -> bool:
    """True if *path* exists, following symlinks."""
    return await _run("exists", path, os.path.exists, path)


async def lexists(path: str) -> bool:
    """True if *path* exists, counting dangling symlinks."""
    return await _run("lexists", path, os.path.lexists, path)


async def mkdirp(path: str) -> None:
    """Create directory *path* and any missing parents."""
    await _run("mkdir", path, _mkdirp, path)


async def unlink(path: str) -> None:
    """Remove *path* recursively; a missing path is not an error."""
    await _run("unlink", path, _remove_tree, path)


async def chmod(path: str, mode: int) -> None:
    """Set the permission bits of *path*."""
    await _run("chmod", path, os.chmod, path, stat.S_IMODE(mode))


async def utime(path: str, atime_ns: int, mtime_ns: int) -> None:
    """Set access and modification times of *path* in nanoseconds."""
    await _run("utime", path, _utime, path, atime_ns, mtime_ns)


async def rename(src: str, dest: str) -> None:
    """Rename *src* to *dest* on the same filesystem."""
    await _run("rename", src, os.rename, src, dest)


async def symlink(target: str, path: str, target_is_directory: bool = False) -> None:
    """Create a symlink at *path* whose text is *target*."""
    await _run("symlink", path, _symlink, target, path, target_is_directory)


async def junction(target: str, path: str) -> None:
    """Create a Windows directory junction at *path* pointing to absolute *target*."""
    await _run("junction", path, _junction, target, path)


async def copy_file(
    src: str,
    dest: str,
    mode: int,
    chunk_size: int = DEFAULT_CHUNK_SIZE
) -> None:
    """Stream the bytes of *src* into *dest*, creating it with *mode*.

    The bytes go to a temporary file beside *dest*, which gets *mode* and then
    replaces *dest*. An existing destination is never opened for writing, so
    a read-only file is updated as long as its directory is writable.
    """
    await _run("copy", dest, _write_stream, src, dest, mode, chunk_size)
