"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Single-write, multi-read result handle used to fan batch results out to callers.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Generator
from typing import Any, Generic

from .errors import DeferredStateError
from .types import Err, Ok, Outcome, V

DoneCallback = Callable[["Deferred[Any]"], None]


class Deferred(Generic[V]):
    """
    Write-once result that any number of coroutines may await.

    Exactly one producer calls `resolve()`. Consumers await `wait()` (or the
    deferred itself) and all observe the same outcome. Waiting does not share
    a cancellable future, so cancelling one consumer never affects the result
    or the remaining consumers.
    """

    __slots__ = ("_outcome", "_event", "_callbacks", "_task")

    def __init__(self) -> None:
        self._outcome: Outcome[V] | None = None
        self._event: asyncio.Event | None = None
        self._callbacks: list[DoneCallback] = []
        self._task: asyncio.Future[V] | None = None

    @classmethod
    def of(cls, value: V) -> Deferred[V]:
        """Create a deferred already resolved with `value`."""
        deferred: Deferred[V] = cls()
        deferred.resolve(Ok(value))
        return deferred

    @classmethod
    def failed(cls, error: BaseException) -> Deferred[V]:
        """Create a deferred already resolved with `error`."""
        deferred: Deferred[V] = cls()
        deferred.resolve(Err(error))
        return deferred

    @classmethod
    def spawn(cls, factory: Callable[[], Awaitable[V]]) -> Deferred[V]:
        """
        Run `factory()` as its own task and resolve with its result.

        A raised exception resolves the deferred with that error. A cancelled
        task resolves with `asyncio.CancelledError`.
        """
        deferred: Deferred[V] = cls()

        async def _run() -> V:
            return await factory()

        task = asyncio.ensure_future(_run())
        deferred._task = task
        task.add_done_callback(deferred._resolve_from_task)
        return deferred

    def cancel(self) -> bool:
        """Cancel the task behind a spawned deferred, if it is still running."""
        if self._task is None or self._task.done():
            return False
        return self._task.cancel()

    def _resolve_from_task(self, task: asyncio.Future[V]) -> None:
        if task.cancelled():
            self.resolve(Err(asyncio.CancelledError()))
            return
        error = task.exception()
        if error is not None:
            self.resolve(Err(error))
        else:
            self.resolve(Ok(task.result()))

    def resolve(self, outcome: Outcome[V]) -> None:
        """Store the outcome and wake every waiter. Allowed exactly once."""
        if self._outcome is not None:
            raise DeferredStateError("Deferred result already resolved")
        self._outcome = outcome
        if self._event is not None:
            self._event.set()
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback(self)

    def done(self) -> bool:
        return self._outcome is not None

    def outcome(self) -> Outcome[V]:
        """Return the stored outcome without waiting."""
        if self._outcome is None:
            raise DeferredStateError("Deferred result is not resolved yet")
        return self._outcome

    def add_done_callback(self, callback: DoneCallback) -> None:
        """Invoke `callback(self)` on resolution, immediately if already resolved."""
        if self._outcome is not None:
            callback(self)
            return
        self._callbacks.append(callback)

    async def wait(self) -> Outcome[V]:
        """Suspend until resolved and return the stored outcome."""
        if self._outcome is None:
            if self._event is None:
                self._event = asyncio.Event()
            await self._event.wait()
        return self._outcome  # type: ignore[return-value]

    async def get(self) -> V:
        """Wait for the outcome and return its value or raise its error."""
        outcome = await self.wait()
        return outcome.unwrap()

    def __await__(self) -> Generator[Any, None, V]:
        return self.get().__await__()

    def __repr__(self) -> str:
        if self._outcome is None:
            return f"{self.__class__.__name__}(pending)"
        return f"{self.__class__.__name__}({self._outcome!r})"
