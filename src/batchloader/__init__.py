"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Request-coalescing batch loader for asyncio.

Concurrent ``load()`` calls for the same key share one pending result, and
distinct keys requested in the same event loop tick are fetched with a single
call to the batch load function.

Quick start::

    from batchloader import DataLoader, Ok

    async def double(keys: list[int]):
        return [Ok(key * 2) for key in keys]

    loader = DataLoader(double)
    six, eight = await asyncio.gather(loader.load(3), loader.load(4))
"""

from .contracts import LoaderOptions
from .deferred import Deferred
from .errors import (
    AggregationError,
    BatchFunctionError,
    BatchLoaderError,
    BatchShapeError,
    DeferredStateError,
    InvalidKeyError,
    MemoStoreError,
    PerKeyError,
)
from .factory import create_loader_from_env
from .fanout import fan_out
from .loader import DataLoader
from .memo import (
    InMemoryMemoStore,
    MemoStore,
    create_memo_store,
    list_memo_stores,
    register_memo_store_factory,
)
from .metrics import LoaderMetrics, NoOpLoaderMetrics, PrometheusLoaderMetrics
from .queue import PendingItem, PendingQueue
from .settings import LoaderSettings
from .types import BatchLoadFn, Err, Ok, Outcome

__all__ = [
    "DataLoader",
    "LoaderOptions",
    "LoaderSettings",
    "create_loader_from_env",
    "Deferred",
    "fan_out",
    "Ok",
    "Err",
    "Outcome",
    "BatchLoadFn",
    "PendingItem",
    "PendingQueue",
    "MemoStore",
    "InMemoryMemoStore",
    "register_memo_store_factory",
    "create_memo_store",
    "list_memo_stores",
    "LoaderMetrics",
    "NoOpLoaderMetrics",
    "PrometheusLoaderMetrics",
    "BatchLoaderError",
    "InvalidKeyError",
    "BatchFunctionError",
    "BatchShapeError",
    "PerKeyError",
    "AggregationError",
    "DeferredStateError",
    "MemoStoreError",
]
