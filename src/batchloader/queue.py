"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Swap-on-drain buffer of pending load requests.
"""

from __future__ import annotations

from collections.abc import Hashable
from dataclasses import dataclass
from threading import Lock
from typing import Any

from .deferred import Deferred


@dataclass(frozen=True, slots=True)
class PendingItem:
    """One queued load plus the deferred result it completes."""

    key: Any
    cache_key: Hashable
    deferred: Deferred[Any]


class PendingQueue:
    """
    Thread-safe append/drain buffer of pending items.

    `drain()` swaps the internal list for a fresh one, so new pushes start the
    next generation while a drained batch is still being loaded. No item can
    appear in two drains.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._items: list[PendingItem] = []

    def push(self, item: PendingItem) -> int:
        """Append `item` and return the queue size after the push."""
        with self._lock:
            self._items.append(item)
            return len(self._items)

    def drain(self) -> list[PendingItem]:
        """Return every queued item and reset the queue to empty."""
        with self._lock:
            items, self._items = self._items, []
            return items

    def size(self) -> int:
        with self._lock:
            return len(self._items)

    def __len__(self) -> int:
        return self.size()
