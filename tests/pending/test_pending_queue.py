from __future__ import annotations

import threading

from batchloader import Deferred, PendingItem, PendingQueue


def _item(key: object) -> PendingItem:
    return PendingItem(key=key, cache_key=key, deferred=Deferred())


def test_push_reports_size_and_drain_resets():
    queue = PendingQueue()
    assert queue.size() == 0

    assert queue.push(_item("a")) == 1
    assert queue.push(_item("b")) == 2
    assert len(queue) == 2

    drained = queue.drain()
    assert [item.key for item in drained] == ["a", "b"]
    assert queue.size() == 0
    assert queue.drain() == []


def test_push_after_drain_starts_next_generation():
    queue = PendingQueue()
    queue.push(_item(1))
    first = queue.drain()

    assert queue.push(_item(2)) == 1
    second = queue.drain()

    assert [item.key for item in first] == [1]
    assert [item.key for item in second] == [2]


def test_concurrent_pushes_and_drains_never_lose_or_duplicate_items():
    queue = PendingQueue()
    drained: list[PendingItem] = []
    drained_lock = threading.Lock()

    def producer(offset: int) -> None:
        for i in range(500):
            queue.push(_item(offset + i))

    def consumer() -> None:
        for _ in range(200):
            batch = queue.drain()
            with drained_lock:
                drained.extend(batch)

    threads = [threading.Thread(target=producer, args=(n * 1000,)) for n in range(4)]
    threads.append(threading.Thread(target=consumer))
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    drained.extend(queue.drain())

    keys = [item.key for item in drained]
    assert len(keys) == 2000
    assert len(set(keys)) == 2000
