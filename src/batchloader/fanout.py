"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Parallel multi-key helper built on deferred results.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from .deferred import Deferred
from .errors import AggregationError
from .types import Err, Outcome, V

logger = logging.getLogger("batchloader.fanout")


async def fan_out(
    keys: Sequence[Any],
    submit: Callable[[Any], Awaitable[V]],
    *,
    cancel_on_error: bool = False,
) -> list[V]:
    """
    Run `submit(key)` concurrently for every key and return values in key order.

    The first failure observed raises `AggregationError` chained from the
    original error. Loads still in flight at that point are left running and
    their results discarded, unless `cancel_on_error` is set, in which case
    they are cancelled. Cancelling a load does not retract its key from a batch
    that was already dispatched.
    """
    if not keys:
        return []

    completed: asyncio.Queue[tuple[int, Outcome[V]]] = asyncio.Queue()
    deferreds: list[Deferred[V]] = []

    for index, key in enumerate(keys):
        deferred: Deferred[V] = Deferred.spawn(lambda k=key: submit(k))
        deferred.add_done_callback(
            lambda d, i=index: completed.put_nowait((i, d.outcome()))
        )
        deferreds.append(deferred)

    values: list[Any] = [None] * len(keys)
    for _ in range(len(keys)):
        index, outcome = await completed.get()
        if isinstance(outcome, Err):
            pending = [d for d in deferreds if not d.done()]
            logger.debug(
                "Fan-out short-circuited at index %d with %d load(s) in flight",
                index,
                len(pending),
            )
            if cancel_on_error:
                for deferred in pending:
                    deferred.cancel()
            raise AggregationError(index, keys[index]) from outcome.error
        values[index] = outcome.value

    return values
