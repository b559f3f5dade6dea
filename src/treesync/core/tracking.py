"""Completion accounting for copy requests and the requests they spawn."""

import itertools
from dataclasses import dataclass
from typing import Dict, Optional

from .models import Callback


@dataclass
class _Node:
    parent_id: Optional[int]
    on_fresh: Optional[Callback]
    on_done: Optional[Callback]
    remaining: Optional[int] = None
    fresh: bool = False


class CompletionTracker:
    """Track when requests become fresh and when they settle.

    Every request is registered under an integer identifier, optionally with
    the identifier of the directory request that spawned it. A request
    settles once it has been classified and, for directories, once every
    child has settled. A request becomes fresh the first time it or any
    descendant needs copying.
    """

    def __init__(self):
        """Initialize an empty tracker."""
        self._ids = itertools.count(1)
        self._nodes: Dict[int, _Node] = {}

    def __len__(self) -> int:
        """Number of requests that have not settled yet."""
        return len(self._nodes)

    def register(
        self,
        on_fresh: Optional[Callback] = None,
        on_done: Optional[Callback] = None,
        parent_id: Optional[int] = None
    ) -> int:
        """Register a request and return its identifier."""
        if parent_id is not None and parent_id not in self._nodes:
            raise KeyError(f"Unknown parent request {parent_id}")

        request_id = next(self._ids)
        self._nodes[request_id] = _Node(parent_id, on_fresh, on_done)
        return request_id

    def expect_children(self, request_id: int, count: int) -> None:
        """Declare how many child requests must settle before *request_id* does."""
        self._nodes[request_id].remaining = count
        if count == 0:
            self.settle(request_id)

    def mark_fresh(self, request_id: int) -> None:
        """Flag *request_id* and its ancestors as needing copying."""
        current: Optional[int] = request_id
        while current is not None:
            node = self._nodes[current]
            if node.fresh:
                break
            node.fresh = True
            if node.on_fresh:
                node.on_fresh()
            current = node.parent_id

    def settle(self, request_id: int) -> None:
        """Mark *request_id* classified and propagate to its parent."""
        current: Optional[int] = request_id
        while current is not None:
            node = self._nodes.pop(current)
            if node.on_done:
                node.on_done()

            parent_id = node.parent_id
            if parent_id is None:
                break

            parent = self._nodes[parent_id]
            parent.remaining -= 1
            if parent.remaining:
                break
            current = parent_id

    def is_pending(self, request_id: int) -> bool:
        """True if *request_id* has not settled yet."""
        return request_id in self._nodes
