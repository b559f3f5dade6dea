"""Idempotent, race-tolerant symlink creation."""

import os
import stat
import sys

from . import primitives
from .errors import AlreadyExistsError, NotFoundError
from ..utils.logging import get_logger


logger = get_logger(__name__)


async def _resolve(path: str) -> str:
    try:
        return await primitives.realpath(path)
    except NotFoundError:
        return os.path.abspath(path)


async def _points_to(dest: str, src: str) -> bool:
    try:
        dest_stat = await primitives.lstat(dest)
    except NotFoundError:
        return False

    if not stat.S_ISLNK(dest_stat.st_mode) or not await primitives.exists(dest):
        return False

    return await primitives.realpath(dest) == await _resolve(src)


async def _materialize(src: str, dest: str, retries: int) -> None:
    if await _points_to(dest, src):
        return

    await primitives.unlink(dest)

    try:
        if sys.platform == "win32":
            # junctions need absolute targets
            await primitives.junction(os.path.abspath(src), dest)
        else:
            # relative links survive moving the whole tree
            relative = os.path.relpath(
                os.path.abspath(src),
                os.path.dirname(os.path.abspath(dest))
            )
            await primitives.symlink(relative, dest)
    except AlreadyExistsError:
        if retries <= 0:
            raise
        logger.debug("Symlink destination created concurrently, retrying", dest=dest)
        await _materialize(src, dest, retries - 1)


async def symlink(src: str, dest: str) -> None:
    """Make *dest* a link to *src*.

    Does nothing when *dest* already resolves to *src*; otherwise replaces
    whatever is at *dest*. On Windows a directory junction with an absolute
    target is created, elsewhere a symlink relative to the parent of *dest*.
    A concurrent creation of *dest* is retried once.

    Raises:
        FileSystemError: If removing the old entry or creating the link fails
    """
    await _materialize(src, dest, retries=1)
