"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Factory helpers for building loaders from environment variables.
"""

from __future__ import annotations

from .loader import DataLoader
from .metrics import LoaderMetrics
from .settings import LoaderSettings
from .types import BatchLoadFn, CacheKeyFn


def create_loader_from_env(
    batch_load_fn: BatchLoadFn,
    *,
    cache_key_fn: CacheKeyFn | None = None,
    metrics: LoaderMetrics | None = None,
    name: str | None = None,
) -> DataLoader:
    """
    Create a `DataLoader` configured from `BATCHLOADER_*` environment variables.

    Variables:
    - `BATCHLOADER_BATCH` / `BATCHLOADER_CACHE`: boolean flags (default on)
    - `BATCHLOADER_MAX_BATCH_SIZE`: positive int, unbounded when unset
    - `BATCHLOADER_DISPATCH_DELAY_S`: non-negative float (default 0)
    - `BATCHLOADER_MEMO_STORE`: registered memo store id (default `inmemory`)

    Callables cannot come from the environment, so `cache_key_fn` is passed
    explicitly.
    """
    settings = LoaderSettings.from_env()
    return DataLoader(
        batch_load_fn,
        settings.to_options(cache_key_fn=cache_key_fn),
        metrics=metrics,
        name=name,
    )
