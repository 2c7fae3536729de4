"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Typed loader options.
"""

from __future__ import annotations

from dataclasses import dataclass

from .memo.base import MemoStore
from .types import CacheKeyFn


@dataclass(frozen=True, slots=True)
class LoaderOptions:
    """
    Batching and memoization controls for one `DataLoader`.

    Attributes:
        batch: Collect loads issued in the same tick into one batch call.
        cache: Memoize deferred results per cache key.
        cache_key_fn: Maps a raw key to its memo key. Identity when unset.
        memo_store: Store instance or registered store id. A fresh in-memory
            store when unset.
        max_batch_size: Split drained batches into chunks of at most this
            many keys. Unbounded when unset.
        dispatch_delay_s: Extra delay before a scheduled dispatch runs.
            Zero dispatches on the next event loop iteration.
    """

    batch: bool = True
    cache: bool = True
    cache_key_fn: CacheKeyFn | None = None
    memo_store: MemoStore | str | None = None
    max_batch_size: int | None = None
    dispatch_delay_s: float = 0.0

    def __post_init__(self) -> None:
        if self.max_batch_size is not None and self.max_batch_size < 1:
            raise ValueError("max_batch_size must be >= 1")
        if self.dispatch_delay_s < 0:
            raise ValueError("dispatch_delay_s must be >= 0")
