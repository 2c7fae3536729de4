"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: memo/base.py.
"""

from __future__ import annotations

from collections.abc import Hashable
from typing import Any, Protocol

from ..deferred import Deferred


class MemoStore(Protocol):
    """
    Protocol implemented by memo stores used by `DataLoader`.

    Stores map cache keys to in-flight or completed deferred results. They
    must tolerate concurrent callers and are always shared by reference.
    """

    store_id: str

    async def get(self, key: Hashable) -> Deferred[Any] | None: ...

    async def set(self, key: Hashable, value: Deferred[Any]) -> None: ...

    async def delete(self, key: Hashable) -> None: ...

    async def clear(self) -> None: ...
