"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: memo/inmemory.py.
"""

from __future__ import annotations

from collections.abc import Hashable
from dataclasses import dataclass, field
from threading import Lock
from typing import Any

from ..deferred import Deferred
from .base import MemoStore


@dataclass(slots=True, eq=False)
class InMemoryMemoStore(MemoStore):
    """Unbounded process-local memo store guarded by its own lock."""

    store_id: str = "inmemory"
    _rows: dict[Hashable, Deferred[Any]] = field(
        default_factory=dict, init=False, repr=False
    )
    _lock: Lock = field(default_factory=Lock, init=False, repr=False)

    async def get(self, key: Hashable) -> Deferred[Any] | None:
        with self._lock:
            return self._rows.get(key)

    async def set(self, key: Hashable, value: Deferred[Any]) -> None:
        with self._lock:
            self._rows[key] = value

    async def delete(self, key: Hashable) -> None:
        with self._lock:
            self._rows.pop(key, None)

    async def clear(self) -> None:
        with self._lock:
            self._rows = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._rows
