"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Request-coalescing loader: dedups concurrent loads per key and batches
distinct keys issued in the same tick into one batch function call.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Hashable, Sequence
from typing import Any, Generic

from more_itertools import chunked

from .contracts import LoaderOptions
from .deferred import Deferred
from .errors import BatchFunctionError, BatchShapeError, InvalidKeyError
from .fanout import fan_out
from .memo import MemoStore, create_memo_store
from .metrics import LoaderMetrics, NoOpLoaderMetrics
from .queue import PendingItem, PendingQueue
from .types import BatchLoadFn, Err, K, Outcome, V, is_outcome

logger = logging.getLogger("batchloader.loader")


class DataLoader(Generic[K, V]):
    """
    Coalesce individual key loads into batched calls to `batch_load_fn`.

    `batch_load_fn` receives the ordered list of keys collected since the last
    dispatch and returns one `Ok`/`Err` outcome per key in the same order. It
    may be a coroutine function or a plain function.

    Usage::

        async def load_users(ids: list[int]) -> list[Outcome[User]]:
            rows = await db.fetch_users(ids)
            return [Ok(rows[i]) if i in rows else Err(PerKeyError(i)) for i in ids]

        users = DataLoader(load_users)
        alice, bob = await asyncio.gather(users.load(1), users.load(2))
    """

    def __init__(
        self,
        batch_load_fn: BatchLoadFn,
        options: LoaderOptions | None = None,
        *,
        metrics: LoaderMetrics | None = None,
        name: str | None = None,
    ) -> None:
        if not callable(batch_load_fn):
            raise TypeError(
                "DataLoader must be constructed with a batch load function "
                f"but got: {batch_load_fn!r}"
            )
        self._batch_load_fn = batch_load_fn
        self._options = options or LoaderOptions()
        self._metrics: LoaderMetrics = metrics or NoOpLoaderMetrics()
        self._name = name or getattr(batch_load_fn, "__name__", "loader")
        self._memo: MemoStore = create_memo_store(self._options.memo_store)
        self._queue = PendingQueue()
        self._lock = asyncio.Lock()
        self._dispatch_tasks: set[asyncio.Task[None]] = set()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self._name!r}, options={self._options!r})"

    @property
    def name(self) -> str:
        return self._name

    @property
    def options(self) -> LoaderOptions:
        return self._options

    @property
    def pending_count(self) -> int:
        """Number of loads waiting for the next dispatch."""
        return self._queue.size()

    def _cache_key(self, key: K) -> Hashable:
        if self._options.cache_key_fn is None:
            return key
        return self._options.cache_key_fn(key)

    def _tags(self, **extra: str) -> dict[str, str]:
        return {"loader": self._name, **extra}

    async def load(self, key: K) -> V:
        """Load one key, returning its value or raising its error."""
        outcome = await self.load_outcome(key)
        return outcome.unwrap()

    async def load_outcome(self, key: K) -> Outcome[V]:
        """Load one key, returning its tagged outcome without raising it."""
        deferred = await self._submit(key)
        return await deferred.wait()

    async def load_many(
        self,
        keys: Sequence[K],
        *,
        cancel_on_error: bool = False,
    ) -> list[V]:
        """
        Load many keys concurrently, returning values in key order.

        Raises `AggregationError` chained from the first failed load.
        """
        return await fan_out(keys, self.load, cancel_on_error=cancel_on_error)

    async def clear(self, key: K) -> DataLoader[K, V]:
        """Drop the memoized result for `key`, if any."""
        await self._memo.delete(self._cache_key(key))
        return self

    async def clear_all(self) -> DataLoader[K, V]:
        """Drop every memoized result."""
        await self._memo.clear()
        return self

    async def prime(self, key: K, value: V | Outcome[V] | BaseException) -> DataLoader[K, V]:
        """
        Memoize a result for `key` unless one already exists.

        Exceptions and `Err` outcomes prime a failed result.
        """
        if key is None:
            raise InvalidKeyError(key)
        cache_key = self._cache_key(key)

        async with self._lock:
            if await self._memo.get(cache_key) is not None:
                return self
            if isinstance(value, BaseException):
                deferred: Deferred[V] = Deferred.failed(value)
            elif is_outcome(value):
                deferred = Deferred()
                deferred.resolve(value)  # type: ignore[arg-type]
            else:
                deferred = Deferred.of(value)  # type: ignore[arg-type]
            await self._memo.set(cache_key, deferred)

        self._metrics.incr("batchloader_primed_total", tags=self._tags())
        return self

    async def _submit(self, key: K) -> Deferred[V]:
        """Return the deferred result for `key`, enqueuing a load on a memo miss."""
        if key is None:
            raise InvalidKeyError(key)

        options = self._options
        immediate: list[PendingItem] | None = None

        async with self._lock:
            cache_key = self._cache_key(key)

            if options.cache:
                cached = await self._memo.get(cache_key)
                if cached is not None:
                    self._metrics.incr(
                        "batchloader_load_total", tags=self._tags(memo="hit")
                    )
                    return cached

            deferred: Deferred[V] = Deferred()
            # Memoize before enqueuing so concurrent loads of this key hit the memo.
            if options.cache:
                await self._memo.set(cache_key, deferred)

            size = self._queue.push(
                PendingItem(key=key, cache_key=cache_key, deferred=deferred)
            )

            # Only the push that fills an empty queue triggers its dispatch.
            if size == 1:
                if options.batch:
                    self._schedule_dispatch()
                else:
                    immediate = self._queue.drain()

        self._metrics.incr(
            "batchloader_load_total",
            tags=self._tags(memo="miss" if options.cache else "disabled"),
        )
        if immediate:
            # Cancelling this caller must not cancel a batch other waiters share.
            await asyncio.shield(self._spawn_dispatch(immediate))
        return deferred

    def _schedule_dispatch(self) -> None:
        loop = asyncio.get_running_loop()
        delay_s = self._options.dispatch_delay_s
        if delay_s > 0:
            loop.call_later(delay_s, self._start_dispatch)
        else:
            loop.call_soon(self._start_dispatch)

    def _start_dispatch(self) -> None:
        items = self._queue.drain()
        if items:
            self._spawn_dispatch(items)

    def _spawn_dispatch(self, items: list[PendingItem]) -> asyncio.Task[None]:
        task = asyncio.ensure_future(self._dispatch(items))
        self._dispatch_tasks.add(task)
        task.add_done_callback(self._dispatch_tasks.discard)
        return task

    async def _dispatch(self, items: list[PendingItem]) -> None:
        max_size = self._options.max_batch_size
        if max_size is None or len(items) <= max_size:
            await self._dispatch_batch(items)
            return
        await asyncio.gather(
            *(self._dispatch_batch(list(chunk)) for chunk in chunked(items, max_size))
        )

    async def _dispatch_batch(self, items: list[PendingItem]) -> None:
        """Call the batch function once and resolve every item in `items`."""
        keys = [item.key for item in items]
        logger.debug("Dispatching %d key(s) for loader %s", len(keys), self._name)
        self._metrics.incr("batchloader_dispatch_total", tags=self._tags())
        self._metrics.incr(
            "batchloader_dispatched_keys_total", len(keys), tags=self._tags()
        )
        self._metrics.observe("batchloader_batch_size", len(keys), tags=self._tags())

        try:
            results = self._batch_load_fn(keys)
            if inspect.isawaitable(results):
                results = await results
        except asyncio.CancelledError:
            await self._fail_batch(
                items,
                BatchFunctionError(keys, "Batch dispatch was cancelled"),
                reason="function",
            )
            raise
        except Exception as exc:
            logger.exception(
                "Batch load function failed for loader %s (%d key(s))",
                self._name,
                len(keys),
            )
            error = BatchFunctionError(keys)
            error.__cause__ = exc
            await self._fail_batch(items, error, reason="function")
            return

        if not isinstance(results, Sequence) or isinstance(results, (str, bytes)):
            await self._shape_mismatch(
                items,
                keys,
                0,
                results,
                message=(
                    "Batch load function must return a sequence of outcomes, "
                    f"got: {type(results).__name__}"
                ),
            )
            return
        if len(results) != len(keys):
            await self._shape_mismatch(items, keys, len(results), results)
            return
        bad_index = next(
            (i for i, result in enumerate(results) if not is_outcome(result)), None
        )
        if bad_index is not None:
            await self._shape_mismatch(
                items,
                keys,
                len(results),
                results,
                message=(
                    "Batch load function must return Ok/Err outcomes, "
                    f"got {type(results[bad_index]).__name__} at index {bad_index}"
                ),
            )
            return

        failed = 0
        for item, result in zip(items, results):
            if isinstance(result, Err):
                failed += 1
            item.deferred.resolve(result)
        if failed:
            self._metrics.incr(
                "batchloader_key_failed_total", failed, tags=self._tags()
            )
        logger.debug(
            "Resolved %d key(s) for loader %s (%d failed)",
            len(keys),
            self._name,
            failed,
        )

    async def _shape_mismatch(
        self,
        items: list[PendingItem],
        keys: list[Any],
        result_count: int,
        results: object,
        *,
        message: str | None = None,
    ) -> None:
        logger.warning(
            "Batch load function for loader %s returned %s of %d result(s) for %d key(s)",
            self._name,
            type(results).__name__,
            result_count,
            len(keys),
        )
        await self._fail_batch(
            items, BatchShapeError(keys, result_count, message), reason="shape"
        )

    async def _fail_batch(
        self,
        items: list[PendingItem],
        error: BaseException,
        *,
        reason: str,
    ) -> None:
        """Evict each item's own memo entry so later loads retry, then reject every item."""
        self._metrics.incr(
            "batchloader_batch_failed_total", tags=self._tags(reason=reason)
        )
        try:
            if self._options.cache:
                async with self._lock:
                    for item in items:
                        await self._evict(item)
        finally:
            for item in items:
                item.deferred.resolve(Err(error))

    async def _evict(self, item: PendingItem) -> None:
        # A clear() followed by a fresh load may have replaced the entry.
        try:
            if await self._memo.get(item.cache_key) is item.deferred:
                await self._memo.delete(item.cache_key)
        except Exception:
            logger.exception(
                "Failed to evict memo entry %r for loader %s", item.cache_key, self._name
            )
