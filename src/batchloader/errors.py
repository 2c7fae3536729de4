"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Error taxonomy raised by loaders, deferred results and memo stores.
"""

from __future__ import annotations

from collections.abc import Hashable, Sequence
from typing import Any


class BatchLoaderError(RuntimeError):
    """Base error for the batch loading runtime."""


class InvalidKeyError(BatchLoaderError, ValueError):
    """Raised when a load is requested with a missing key."""

    def __init__(self, key: Any = None) -> None:
        super().__init__(
            f"load() must be called with a key value but got: {key!r}"
        )
        self.key = key


class BatchFunctionError(BatchLoaderError):
    """Raised to every caller in a batch whose batch function failed."""

    def __init__(self, keys: Sequence[Any], message: str | None = None) -> None:
        super().__init__(
            message or f"Batch load function failed for {len(keys)} key(s)"
        )
        self.keys = list(keys)


class BatchShapeError(BatchLoaderError):
    """
    Raised to every caller in a batch whose results did not line up with keys.

    The batch function must return exactly one `Outcome` per key, in key order.
    """

    def __init__(
        self,
        keys: Sequence[Any],
        result_count: int,
        message: str | None = None,
    ) -> None:
        super().__init__(
            message
            or (
                "Batch load function must return a sequence of outcomes with the "
                f"same length as its keys, but got {result_count} result(s) for "
                f"{len(keys)} key(s)"
            )
        )
        self.keys = list(keys)
        self.result_count = result_count


class PerKeyError(BatchLoaderError):
    """Convenience error batch functions can return for one failed key."""

    def __init__(self, key: Hashable, message: str | None = None) -> None:
        super().__init__(message or f"Failed to load key {key!r}")
        self.key = key


class AggregationError(BatchLoaderError):
    """Raised by fan-out loads when one of the parallel loads fails."""

    def __init__(self, index: int, key: Any) -> None:
        super().__init__(f"Load for key {key!r} at index {index} failed")
        self.index = index
        self.key = key


class DeferredStateError(BatchLoaderError):
    """Raised on double resolution or premature reads of a deferred result."""


class MemoStoreError(BatchLoaderError):
    """Raised when memo store resolution fails."""
