"""
batched_lookup.py: minimal batch loader example.

Demonstrates four concurrent lookups (one duplicated, one missing) served by
a single batch call.

Usage:
    PYTHONPATH=src python examples/batched_lookup.py
"""

import asyncio
import logging

from batchloader import DataLoader, Err, Ok, PerKeyError

USERS = {1: "ada", 2: "grace"}


async def fetch_users(ids: list[int]):
    print(f"fetching {ids}")
    return [Ok(USERS[i]) if i in USERS else Err(PerKeyError(i, "no such user")) for i in ids]


async def main() -> None:
    users = DataLoader(fetch_users)
    results = await asyncio.gather(
        users.load(1), users.load(2), users.load(1), users.load(3),
        return_exceptions=True,
    )
    print(results)


if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG)
    asyncio.run(main())
