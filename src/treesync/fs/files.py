"""Text and JSON file helpers."""

import asyncio
import json
import os
from pathlib import Path
from typing import Any, Iterable, Optional, Union

from . import primitives
from .errors import translate_os_error


BOM = "\ufeff"


async def _read(loc: str, binary: bool) -> Union[str, bytes]:
    loop = asyncio.get_running_loop()
    reader = Path(loc).read_bytes if binary else Path(loc).read_text
    args = () if binary else ("utf-8",)
    try:
        return await loop.run_in_executor(None, reader, *args)
    except OSError as e:
        raise translate_os_error(e, "read", loc) from e


async def read_file(loc: str) -> str:
    """Read *loc* as UTF-8 text."""
    return await _read(loc, binary=False)


async def read_file_raw(loc: str) -> bytes:
    """Read *loc* as bytes."""
    return await _read(loc, binary=True)


async def write_file(loc: str, data: Union[str, bytes]) -> None:
    """Write *data* to *loc*, replacing any existing contents."""
    loop = asyncio.get_running_loop()
    path = Path(loc)
    try:
        if isinstance(data, bytes):
            await loop.run_in_executor(None, path.write_bytes, data)
        else:
            await loop.run_in_executor(None, path.write_text, data, "utf-8")
    except OSError as e:
        raise translate_os_error(e, "write", loc) from e


async def read_file_any(locations: Iterable[str]) -> Optional[str]:
    """Return the text of the first file in *locations* that exists."""
    for loc in locations:
        if await primitives.exists(loc):
            return await read_file(loc)
    return None


async def read_json(loc: str) -> Any:
    """Parse *loc* as JSON, ignoring a leading byte order mark.

    Raises:
        ValueError: If the contents are not valid JSON; the message is
            prefixed with *loc*
    """
    content = await read_file(loc)
    if content.startswith(BOM):
        content = content[len(BOM):]

    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        raise ValueError(f"{loc}: {e}") from e


async def find(filename: str, directory: str) -> Optional[str]:
    """Look for *filename* in *directory* and each of its ancestors.

    Returns:
        Path of the nearest match, or None if no ancestor contains it
    """
    current = os.path.abspath(directory)

    while True:
        loc = os.path.join(current, filename)
        if await primitives.exists(loc):
            return loc

        parent = os.path.dirname(current)
        if parent == current:
            return None
        current = parent
