"""Command-line entry point."""

import argparse
import asyncio
import json
import sys
from typing import List, Optional

from .concurrency import get_lock_queue
from .core import SyncEngine, SyncResult
from .fs import FileSystemError, walk
from .utils.logging import setup_logging, get_logger


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the ``treesync`` command."""
    parser = argparse.ArgumentParser(
        prog="treesync",
        description="Make a destination tree identical to a source tree."
    )
    parser.add_argument(
        "--log-level",
        default=None,
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override TREESYNC_LOG_LEVEL"
    )
    parser.add_argument(
        "--log-format",
        default=None,
        choices=["console", "json"],
        help="Override TREESYNC_LOG_FORMAT"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    sync_parser = subparsers.add_parser("sync", help="Synchronise SRC into DEST")
    sync_parser.add_argument("src", help="Source file, directory or symlink")
    sync_parser.add_argument("dest", help="Destination path")

    walk_parser = subparsers.add_parser("walk", help="List ROOT recursively as JSON lines")
    walk_parser.add_argument("root", help="Directory to list")
    walk_parser.add_argument(
        "--ignore",
        action="append",
        default=[],
        metavar="NAME",
        help="Base name to skip (repeatable)"
    )

    return parser


async def run_sync(src: str, dest: str) -> SyncResult:
    """Synchronise *src* into *dest* while holding the lock for *dest*."""
    engine = SyncEngine()
    return await get_lock_queue().push(dest, lambda: engine.copy(src, dest))


async def run_walk(root: str, ignore: List[str]) -> int:
    """Write the walk manifest of *root* to stdout and return the entry count."""
    entries = await walk(root, ignore_basenames=ignore)
    for entry in entries:
        sys.stdout.write(json.dumps(entry.to_dict()) + "\n")
    return len(entries)


def main(argv: Optional[List[str]] = None) -> int:
    """Run the command line and return the process exit status."""
    args = build_parser().parse_args(argv)

    setup_logging(log_level=args.log_level, log_format=args.log_format)
    logger = get_logger("main")

    try:
        if args.command == "sync":
            result = asyncio.run(run_sync(args.src, args.dest))
            sys.stdout.write(
                f"{result.files_copied} files copied, "
                f"{result.symlinks_created} symlinks created, "
                f"{len(result.removed)} removed\n"
            )
        else:
            asyncio.run(run_walk(args.root, args.ignore))
    except FileSystemError as e:
        logger.error("Command failed", command=args.command, error=str(e))
        sys.stderr.write(f"treesync: {e}\n")
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
