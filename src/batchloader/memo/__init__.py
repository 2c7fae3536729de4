"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: memo/__init__.py.
"""

from .base import MemoStore
from .inmemory import InMemoryMemoStore
from .registry import (
    DEFAULT_MEMO_STORE,
    create_memo_store,
    list_memo_stores,
    register_memo_store_factory,
)

__all__ = [
    "MemoStore",
    "InMemoryMemoStore",
    "DEFAULT_MEMO_STORE",
    "register_memo_store_factory",
    "create_memo_store",
    "list_memo_stores",
]
