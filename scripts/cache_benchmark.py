#!/usr/bin/env python3
"""
Query cache benchmark utility for coalescing/hit-rate characterization.

Usage examples:
  PYTHONPATH=src python scripts/cache_benchmark.py --storage memory
  PYTHONPATH=src python scripts/cache_benchmark.py --storage redis --redis-url redis://localhost:6379/0
  PYTHONPATH=src python scripts/cache_benchmark.py --storage file --directory /tmp/kairos-bench
"""

from __future__ import annotations

import argparse
import asyncio
import random
import statistics
import time
import uuid

from kairos.cache import CacheConfig, EvictionPolicy, create_storage
from kairos.observability import InMemoryCacheMetrics
from kairos.query import QueryCache


async def run_benchmark(
    *,
    storage: str,
    num_requests: int,
    key_space: int,
    max_size: int,
    policy: str,
    latency_ms: float,
    redis_url: str | None,
    directory: str | None,
) -> None:
    if storage == "redis" and not redis_url:
        raise ValueError("--redis-url is required for redis storage")
    backend = create_storage(
        storage,
        directory=directory,
        redis_url=redis_url,
        prefix=f"bench:{uuid.uuid4().hex}",
    )
    metrics = InMemoryCacheMetrics()
    config = CacheConfig(
        max_size=max_size,
        eviction_policy=EvictionPolicy(policy),
        persist_to_storage=True,
        storage_key="kairos_bench_cache",
    )
    latency_s = latency_ms / 1000.0
    durations: list[float] = []

    async def request(key: str) -> None:
        async def produce() -> dict[str, str]:
            await asyncio.sleep(latency_s)
            return {"key": key}

        started = time.perf_counter()
        await queries.fetch(key, produce)
        durations.append(time.perf_counter() - started)

    async with QueryCache(config, storage=backend, metrics=metrics) as queries:
        keys = [f"item:{random.randrange(key_space)}" for _ in range(num_requests)]
        started = time.time()
        await asyncio.gather(*(request(key) for key in keys))
        elapsed = time.time() - started
        stats = queries.get_stats()

    p50 = statistics.median(durations) if durations else 0.0
    p95 = sorted(durations)[int(0.95 * (len(durations) - 1))] if durations else 0.0

    print(f"storage={storage}")
    print(f"requests={num_requests}")
    print(f"key_space={key_space}")
    print(f"policy={policy}")
    print(f"elapsed_s={elapsed:.3f}")
    print(f"producer_calls={metrics.total('query_producer_calls_total')}")
    print(f"joined_calls={metrics.total('query_joined_total')}")
    print(f"hit_rate={stats.hit_rate:.3f}")
    print(f"evictions={metrics.total('cache_evictions_total')}")
    print(f"fetch_p50_ms={p50 * 1000:.2f}")
    print(f"fetch_p95_ms={p95 * 1000:.2f}")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Query cache benchmark utility")
    parser.add_argument("--storage", choices=("memory", "file", "redis"), default="memory")
    parser.add_argument("--num-requests", type=int, default=2000)
    parser.add_argument("--key-space", type=int, default=300)
    parser.add_argument("--max-size", type=int, default=200)
    parser.add_argument("--policy", choices=[p.value for p in EvictionPolicy], default="LRU")
    parser.add_argument("--latency-ms", type=float, default=5.0)
    parser.add_argument("--redis-url", type=str, default=None)
    parser.add_argument("--directory", type=str, default=None)
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    asyncio.run(
        run_benchmark(
            storage=args.storage,
            num_requests=args.num_requests,
            key_space=args.key_space,
            max_size=args.max_size,
            policy=args.policy,
            latency_ms=args.latency_ms,
            redis_url=args.redis_url,
            directory=args.directory,
        )
    )


if __name__ == "__main__":
    main()
