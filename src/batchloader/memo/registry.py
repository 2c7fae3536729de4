"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: memo/registry.py.
"""

from __future__ import annotations

from collections.abc import Callable
from threading import Lock

from ..errors import MemoStoreError
from .base import MemoStore
from .inmemory import InMemoryMemoStore

MemoStoreFactory = Callable[[], MemoStore]

DEFAULT_MEMO_STORE = "inmemory"

_REGISTRY: dict[str, MemoStoreFactory] = {DEFAULT_MEMO_STORE: InMemoryMemoStore}
_LOCK = Lock()


def register_memo_store_factory(
    store_id: str,
    factory: MemoStoreFactory,
    *,
    overwrite: bool = False,
) -> None:
    """Register one memo store factory by id."""
    key = store_id.strip().lower()
    if not key:
        raise MemoStoreError("Memo store id must be non-empty")

    with _LOCK:
        if key in _REGISTRY and not overwrite:
            raise MemoStoreError(f"Memo store already registered: {key}")
        _REGISTRY[key] = factory


def create_memo_store(store: str | MemoStore | None = None) -> MemoStore:
    """
    Resolve a memo store from id/instance/default.

    Ids build a fresh store from the registered factory, so loaders never
    share memo state unless one instance is passed explicitly.
    """
    if store is None:
        store = DEFAULT_MEMO_STORE

    if not isinstance(store, str):
        return store

    key = store.strip().lower()
    with _LOCK:
        factory = _REGISTRY.get(key)
    if factory is None:
        raise MemoStoreError(f"Unknown memo store '{store}'")
    return factory()


def list_memo_stores() -> list[str]:
    """List registered memo store ids."""
    with _LOCK:
        return sorted(_REGISTRY.keys())
