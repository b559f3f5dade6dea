"""Path-keyed mutual exclusion for synchronization callers."""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Dict, List, Optional, TypeVar

from ..utils.logging import get_logger


T = TypeVar('T')


class LockQueue:
    """Serialise work per key, typically a destination path.

    Holders of different keys run concurrently; holders of the same key run
    one at a time in arrival order. A key's lock is dropped as soon as nobody
    holds or waits for it.
    """

    def __init__(self, name: str = "lock queue"):
        """Initialize lock queue.

        Args:
            name: Name used in log messages
        """
        self.name = name
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}
        self.logger = get_logger(self.__class__.__name__)

    def get_lock(self, key: str) -> asyncio.Lock:
        """Get or create the lock for *key*."""
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
            self.logger.debug("Created lock", queue=self.name, key=key)

        return self._locks[key]

    @asynccontextmanager
    async def acquire(self, key: str) -> AsyncIterator[None]:
        """Hold the lock for *key* for the duration of the block."""
        lock = self.get_lock(key)
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]

    async def push(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        """Run ``await factory()`` while holding the lock for *key*."""
        async with self.acquire(key):
            return await factory()

    def is_locked(self, key: str) -> bool:
        """True if some holder currently owns *key*."""
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    def active_keys(self) -> List[str]:
        """Keys that are currently held or waited on."""
        return sorted(self._locks)


# Global lock queue instance
_global_lock_queue: Optional[LockQueue] = None


def get_lock_queue() -> LockQueue:
    """Get the global filesystem lock queue."""
    global _global_lock_queue

    if _global_lock_queue is None:
        _global_lock_queue = LockQueue("fs lock")

    return _global_lock_queue
