"""
query_cache.py: minimal Kairos cache example.

Demonstrates request deduplication, cache hits, pattern invalidation and the
aggregated stats report from one ``CacheManager``.

Usage:
    PYTHONPATH=src python examples/query_cache.py
"""

import asyncio
import logging

from kairos import CacheManager
from kairos.observability import ConsoleStatsExporter


async def load_user(user_id: int) -> dict[str, object]:
    await asyncio.sleep(0.1)
    return {"id": user_id, "name": f"user-{user_id}"}


async def main() -> None:
    logging.basicConfig(level=logging.INFO)

    async with CacheManager() as caches:
        queries = caches.query_cache

        users = await asyncio.gather(
            *(queries.fetch("user:1", lambda: load_user(1)) for _ in range(5))
        )
        print(f"5 concurrent fetches -> {users[0]}")

        await queries.fetch("user:1", lambda: load_user(1))
        await queries.prefetch("user:2", lambda: load_user(2))
        print(f"invalidated {queries.invalidate('user:')} user keys")

        caches.leak_detector.sample_once()
        ConsoleStatsExporter().export(caches.get_stats())


if __name__ == "__main__":
    asyncio.run(main())
