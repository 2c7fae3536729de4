"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Shared type definitions for batch loading.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Hashable, Sequence
from dataclasses import dataclass
from typing import Any, Generic, TypeAlias, TypeVar, Union

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


@dataclass(frozen=True, slots=True)
class Ok(Generic[V]):
    """Successful per-key result."""

    value: V

    @property
    def is_ok(self) -> bool:
        return True

    def unwrap(self) -> V:
        return self.value


@dataclass(frozen=True, slots=True)
class Err:
    """Failed per-key result carrying the exception raised to the caller."""

    error: BaseException

    @property
    def is_ok(self) -> bool:
        return False

    def unwrap(self) -> Any:
        raise self.error


Outcome: TypeAlias = Union[Ok[V], Err]

# Batch functions may be plain or coroutine functions.
BatchLoadFn: TypeAlias = Callable[
    [list[Any]],
    Union[Sequence[Outcome[Any]], Awaitable[Sequence[Outcome[Any]]]],
]

CacheKeyFn: TypeAlias = Callable[[Any], Hashable]


def is_outcome(value: object) -> bool:
    """Return whether `value` is an `Ok` or `Err` instance."""
    return isinstance(value, (Ok, Err))
