#!/usr/bin/env python3
"""
Loader benchmark utility for batching/dedup characterization.

Usage examples:
  PYTHONPATH=src python scripts/loader_benchmark.py
  PYTHONPATH=src python scripts/loader_benchmark.py --num-loads 5000 --key-space 200 --max-batch-size 50
  PYTHONPATH=src python scripts/loader_benchmark.py --no-batch --no-cache
"""

from __future__ import annotations

import argparse
import asyncio
import random
import statistics
import time

from batchloader import DataLoader, LoaderOptions, Ok


class SleepBatch:
    """Batch function that sleeps a fixed latency per call."""

    def __init__(self, latency_ms: float) -> None:
        self._latency_s = latency_ms / 1000.0
        self.batch_sizes: list[int] = []

    async def __call__(self, keys: list[int]):
        self.batch_sizes.append(len(keys))
        await asyncio.sleep(self._latency_s)
        return [Ok(key) for key in keys]


async def run_benchmark(
    *,
    num_loads: int,
    key_space: int,
    latency_ms: float,
    batch: bool,
    cache: bool,
    max_batch_size: int | None,
    seed: int,
) -> None:
    rng = random.Random(seed)
    keys = [rng.randrange(key_space) for _ in range(num_loads)]
    batch_fn = SleepBatch(latency_ms=latency_ms)
    loader = DataLoader(
        batch_fn,
        LoaderOptions(batch=batch, cache=cache, max_batch_size=max_batch_size),
        name="bench",
    )

    latencies: list[float] = []

    async def timed_load(key: int) -> None:
        started = time.perf_counter()
        await loader.load(key)
        latencies.append(time.perf_counter() - started)

    started = time.perf_counter()
    await asyncio.gather(*(timed_load(key) for key in keys))
    elapsed = time.perf_counter() - started

    sizes = batch_fn.batch_sizes
    fetched = sum(sizes)
    p50 = statistics.median(latencies) if latencies else 0.0
    p95 = sorted(latencies)[int(0.95 * (len(latencies) - 1))] if latencies else 0.0

    print(f"loads={num_loads}")
    print(f"key_space={key_space}")
    print(f"batch={batch} cache={cache} max_batch_size={max_batch_size}")
    print(f"batch_latency_ms={latency_ms:.2f}")
    print(f"batch_calls={len(sizes)}")
    print(f"keys_fetched={fetched}")
    print(f"dedup_ratio={(1 - fetched / num_loads) if num_loads else 0.0:.3f}")
    print(f"mean_batch_size={statistics.mean(sizes) if sizes else 0.0:.2f}")
    print(f"elapsed_s={elapsed:.3f}")
    print(f"load_latency_p50_ms={p50 * 1000:.2f}")
    print(f"load_latency_p95_ms={p95 * 1000:.2f}")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Loader benchmark utility")
    parser.add_argument("--num-loads", type=int, default=1000)
    parser.add_argument("--key-space", type=int, default=100)
    parser.add_argument("--latency-ms", type=float, default=10.0)
    parser.add_argument("--max-batch-size", type=int, default=None)
    parser.add_argument("--no-batch", action="store_true")
    parser.add_argument("--no-cache", action="store_true")
    parser.add_argument("--seed", type=int, default=0)
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    asyncio.run(
        run_benchmark(
            num_loads=args.num_loads,
            key_space=args.key_space,
            latency_ms=args.latency_ms,
            batch=not args.no_batch,
            cache=not args.no_cache,
            max_batch_size=args.max_batch_size,
            seed=args.seed,
        )
    )


if __name__ == "__main__":
    main()
