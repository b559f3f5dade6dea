"""Concurrency helpers package."""

from .pool import ConcurrentExecutor, WorkQueue
from .locks import LockQueue, get_lock_queue

__all__ = [
    "ConcurrentExecutor",
    "WorkQueue",
    "LockQueue",
    "get_lock_queue",
]
