from __future__ import annotations

import asyncio

import pytest

from batchloader import (
    BatchFunctionError,
    BatchShapeError,
    DataLoader,
    Err,
    InMemoryMemoStore,
    InvalidKeyError,
    LoaderOptions,
    Ok,
    PerKeyError,
)


def run_async(coro):
    return asyncio.run(coro)


class _RecordingBatch:
    """Batch function that doubles keys and records every call."""

    def __init__(self) -> None:
        self.calls: list[list[int]] = []

    async def __call__(self, keys: list[int]):
        self.calls.append(list(keys))
        return [Ok(key * 2) for key in keys]


def test_back_to_back_loads_share_one_batch():
    async def scenario() -> None:
        batch = _RecordingBatch()
        loader = DataLoader(batch)

        three, four = await asyncio.gather(loader.load(3), loader.load(4))

        assert three == 6
        assert four == 8
        assert batch.calls == [[3, 4]]

    run_async(scenario())


def test_batch_keys_follow_submission_order():
    async def scenario() -> None:
        batch = _RecordingBatch()
        loader = DataLoader(batch)

        values = await asyncio.gather(*(loader.load(k) for k in (5, 1, 9, 2)))

        assert values == [10, 2, 18, 4]
        assert batch.calls == [[5, 1, 9, 2]]

    run_async(scenario())


def test_loads_in_separate_ticks_dispatch_separately():
    async def scenario() -> None:
        batch = _RecordingBatch()
        loader = DataLoader(batch)

        assert await loader.load(1) == 2
        assert await loader.load(2) == 4
        assert batch.calls == [[1], [2]]

    run_async(scenario())


def test_batching_disabled_dispatches_each_load_alone():
    async def scenario() -> None:
        batch = _RecordingBatch()
        loader = DataLoader(batch, LoaderOptions(batch=False))

        values = await asyncio.gather(loader.load(1), loader.load(2), loader.load(3))

        assert values == [2, 4, 6]
        assert batch.calls == [[1], [2], [3]]

    run_async(scenario())


def test_batching_disabled_resolves_before_load_returns_without_tick():
    async def scenario() -> None:
        batch = _RecordingBatch()
        loader = DataLoader(batch, LoaderOptions(batch=False))

        deferred = await loader._submit(7)  # noqa: SLF001

        assert deferred.done()
        assert batch.calls == [[7]]
        assert loader.pending_count == 0

    run_async(scenario())


def test_sync_batch_function_is_supported():
    async def scenario() -> None:
        calls: list[list[str]] = []

        def upper(keys: list[str]):
            calls.append(list(keys))
            return [Ok(key.upper()) for key in keys]

        loader = DataLoader(upper)
        values = await asyncio.gather(loader.load("a"), loader.load("b"))

        assert values == ["A", "B"]
        assert calls == [["a", "b"]]

    run_async(scenario())


def test_max_batch_size_splits_drained_queue():
    async def scenario() -> None:
        batch = _RecordingBatch()
        loader = DataLoader(batch, LoaderOptions(max_batch_size=2))

        values = await asyncio.gather(*(loader.load(k) for k in range(1, 6)))

        assert values == [2, 4, 6, 8, 10]
        assert batch.calls == [[1, 2], [3, 4], [5]]

    run_async(scenario())


def test_dispatch_delay_collects_loads_across_ticks():
    async def scenario() -> None:
        batch = _RecordingBatch()
        loader = DataLoader(batch, LoaderOptions(dispatch_delay_s=0.05))

        async def later(key: int) -> int:
            await asyncio.sleep(0)
            return await loader.load(key)

        values = await asyncio.gather(loader.load(1), later(2))

        assert values == [2, 4]
        assert batch.calls == [[1, 2]]

    run_async(scenario())


def test_loads_during_inflight_batch_start_next_generation():
    async def scenario() -> None:
        release = asyncio.Event()
        calls: list[list[int]] = []

        async def slow(keys: list[int]):
            calls.append(list(keys))
            if len(calls) == 1:
                await release.wait()
            return [Ok(key) for key in keys]

        loader = DataLoader(slow)
        first = asyncio.ensure_future(loader.load(1))
        await asyncio.sleep(0.01)
        assert calls == [[1]]

        second = asyncio.ensure_future(loader.load(2))
        await asyncio.sleep(0.01)
        assert calls == [[1], [2]]
        assert await second == 2

        release.set()
        assert await first == 1

    run_async(scenario())


def test_invalid_key_raises_before_enqueue():
    async def scenario() -> None:
        batch = _RecordingBatch()
        loader = DataLoader(batch)

        with pytest.raises(InvalidKeyError, match="must be called with a key"):
            await loader.load(None)  # type: ignore[arg-type]

        assert loader.pending_count == 0
        await asyncio.sleep(0)
        assert batch.calls == []

    run_async(scenario())


def test_constructor_rejects_non_callable():
    with pytest.raises(TypeError, match="batch load function"):
        DataLoader("not-callable")  # type: ignore[arg-type]


def test_per_key_error_only_rejects_that_key():
    async def scenario() -> None:
        calls: list[list[int]] = []

        async def partial(keys: list[int]):
            calls.append(list(keys))
            return [
                Ok(key) if key != 2 else Err(PerKeyError(key, "no such row"))
                for key in keys
            ]

        loader = DataLoader(partial)
        results = await asyncio.gather(
            loader.load(1), loader.load(2), return_exceptions=True
        )

        assert results[0] == 1
        assert isinstance(results[1], PerKeyError)
        assert results[1].key == 2

        # Negative results stay memoized.
        with pytest.raises(PerKeyError, match="no such row"):
            await loader.load(2)
        assert calls == [[1, 2]]

        await loader.clear_all()
        with pytest.raises(PerKeyError):
            await loader.load(2)
        assert calls == [[1, 2], [2]]

    run_async(scenario())


def test_load_outcome_returns_tagged_result():
    async def scenario() -> None:
        error = PerKeyError(2)

        async def partial(keys: list[int]):
            return [Ok(key) if key != 2 else Err(error) for key in keys]

        loader = DataLoader(partial)
        ok, err = await asyncio.gather(loader.load_outcome(1), loader.load_outcome(2))

        assert ok == Ok(1)
        assert isinstance(err, Err)
        assert err.error is error

    run_async(scenario())


def test_batch_function_failure_rejects_and_evicts_whole_batch():
    async def scenario() -> None:
        calls: list[list[int]] = []

        async def flaky(keys: list[int]):
            calls.append(list(keys))
            if len(calls) == 1:
                raise ConnectionError("backend down")
            return [Ok(key) for key in keys]

        loader = DataLoader(flaky)
        results = await asyncio.gather(
            loader.load(1), loader.load(2), return_exceptions=True
        )

        for result in results:
            assert isinstance(result, BatchFunctionError)
            assert result.keys == [1, 2]
            assert isinstance(result.__cause__, ConnectionError)

        # Failed entries were evicted, so the next load retries.
        assert await loader.load(1) == 1
        assert calls == [[1, 2], [1]]

    run_async(scenario())


def test_short_result_list_is_a_shape_error_for_every_key():
    async def scenario() -> None:
        calls: list[list[int]] = []

        async def short(keys: list[int]):
            calls.append(list(keys))
            if len(calls) == 1:
                return [Ok(keys[0])]
            return [Ok(key) for key in keys]

        loader = DataLoader(short)
        results = await asyncio.gather(
            loader.load(1), loader.load(2), return_exceptions=True
        )

        for result in results:
            assert isinstance(result, BatchShapeError)
            assert result.result_count == 1
            assert result.keys == [1, 2]

        assert await loader.load(2) == 2
        assert calls == [[1, 2], [2]]

    run_async(scenario())


def test_untagged_results_are_a_shape_error():
    async def scenario() -> None:
        async def raw(keys: list[int]):
            return [key for key in keys]

        loader = DataLoader(raw)
        with pytest.raises(BatchShapeError, match="Ok/Err outcomes"):
            await loader.load(1)

    run_async(scenario())


def test_non_sequence_result_is_a_shape_error():
    async def scenario() -> None:
        async def generator(keys: list[int]):
            return (Ok(key) for key in keys)

        loader = DataLoader(generator)
        with pytest.raises(BatchShapeError, match="sequence of outcomes"):
            await loader.load(1)

    run_async(scenario())


def test_cancelled_dispatch_rejects_every_item():
    async def scenario() -> None:
        started = asyncio.Event()

        async def hang(keys: list[int]):
            started.set()
            await asyncio.Event().wait()
            return [Ok(key) for key in keys]

        loader = DataLoader(hang)
        pending = asyncio.gather(
            loader.load(1), loader.load(2), return_exceptions=True
        )
        await started.wait()

        for task in list(loader._dispatch_tasks):  # noqa: SLF001
            task.cancel()

        results = await pending
        assert all(isinstance(result, BatchFunctionError) for result in results)

    run_async(scenario())


def test_cancelling_one_waiter_does_not_affect_other_waiters():
    async def scenario() -> None:
        release = asyncio.Event()
        calls: list[list[int]] = []

        async def slow(keys: list[int]):
            calls.append(list(keys))
            await release.wait()
            return [Ok(key * 10) for key in keys]

        loader = DataLoader(slow)
        first = asyncio.ensure_future(loader.load(1))
        second = asyncio.ensure_future(loader.load(1))
        await asyncio.sleep(0.01)

        first.cancel()
        release.set()

        assert await second == 10
        assert first.cancelled()
        assert calls == [[1]]

    run_async(scenario())


def test_load_with_timeout_does_not_retract_key():
    async def scenario() -> None:
        release = asyncio.Event()
        calls: list[list[int]] = []

        async def slow(keys: list[int]):
            calls.append(list(keys))
            await release.wait()
            return [Ok(key) for key in keys]

        loader = DataLoader(slow)
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(loader.load(4), timeout=0.01)

        release.set()
        assert await loader.load(4) == 4
        assert calls == [[4]]

    run_async(scenario())


class _FlakyDeleteStore:
    """Memo store whose delete fails for one key."""

    store_id = "flaky-delete"

    def __init__(self, fail_key: object) -> None:
        self.rows = InMemoryMemoStore()
        self._fail_key = fail_key

    async def get(self, key):
        return await self.rows.get(key)

    async def set(self, key, value) -> None:
        await self.rows.set(key, value)

    async def delete(self, key) -> None:
        if key == self._fail_key:
            raise ConnectionError("store unavailable")
        await self.rows.delete(key)

    async def clear(self) -> None:
        await self.rows.clear()


def test_failed_eviction_still_rejects_every_item():
    async def scenario() -> None:
        async def boom(keys: list[int]):
            raise ConnectionError("backend down")

        store = _FlakyDeleteStore(fail_key=1)
        loader = DataLoader(boom, LoaderOptions(memo_store=store))

        results = await asyncio.wait_for(
            asyncio.gather(loader.load(1), loader.load(2), return_exceptions=True),
            timeout=1,
        )

        assert all(isinstance(result, BatchFunctionError) for result in results)
        assert 1 in store.rows
        assert 2 not in store.rows

    run_async(scenario())


def test_failed_batch_keeps_entry_stored_after_clear():
    async def scenario() -> None:
        fail_first = asyncio.Event()
        release_second = asyncio.Event()
        calls: list[list[str]] = []

        async def gated(keys: list[str]):
            calls.append(list(keys))
            if len(calls) == 1:
                await fail_first.wait()
                raise ConnectionError("backend down")
            await release_second.wait()
            return [Ok(key.upper()) for key in keys]

        loader = DataLoader(gated)
        first = asyncio.ensure_future(loader.load("k"))
        await asyncio.sleep(0.01)

        await loader.clear("k")
        second = asyncio.ensure_future(loader.load("k"))
        await asyncio.sleep(0.01)
        assert calls == [["k"], ["k"]]

        fail_first.set()
        with pytest.raises(BatchFunctionError):
            await first

        # The in-flight second load still owns the memo entry.
        third = asyncio.ensure_future(loader.load("k"))
        await asyncio.sleep(0.01)
        assert calls == [["k"], ["k"]]

        release_second.set()
        assert await second == "K"
        assert await third == "K"

    run_async(scenario())


def test_shape_error_reports_counts_not_payloads():
    async def scenario() -> None:
        async def mixed(keys: list[int]):
            return [Ok(key) for key in keys[:-1]] + ["x" * 1000]

        loader = DataLoader(mixed)
        with pytest.raises(BatchShapeError, match="got str at index 2") as info:
            await asyncio.gather(loader.load(1), loader.load(2), loader.load(3))

        assert "xxx" not in str(info.value)

    run_async(scenario())
