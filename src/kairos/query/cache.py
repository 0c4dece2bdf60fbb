"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Query cache: policy cache plus in-flight request deduplication.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeVar

from ..cache.advanced import AdvancedCache
from ..cache.codecs import PayloadCodec
from ..cache.storage import DurableStorage
from ..cache.types import QUERY_CACHE_DEFAULTS, CacheConfig, CacheStats
from ..observability.metrics import CacheMetrics, NoOpCacheMetrics
from ..runtime.coalescing import RequestCoalescer
from .patterns import KeyPattern, compile_key_pattern

logger = logging.getLogger("kairos.query")

R = TypeVar("R")

# Producer signature: zero-argument callable resolving to the value.
Producer = Callable[[], Awaitable[R]]

_MISSING = object()


class QueryCache:
    """
    Deduplicating query layer over one ``AdvancedCache``.

    ``fetch`` serves cache hits without suspending; on a miss every caller for
    the same key joins one producer call, whose value is cached on success
    and whose failure reaches every joiner.

    ``config`` may be a full ``CacheConfig`` or a mapping of overrides merged
    onto ``QUERY_CACHE_DEFAULTS``.
    """

    def __init__(
        self,
        config: CacheConfig | Mapping[str, Any] | None = None,
        *,
        name: str = "query",
        storage: DurableStorage | None = None,
        codec: PayloadCodec[Any] | None = None,
        metrics: CacheMetrics | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if config is None:
            resolved = QUERY_CACHE_DEFAULTS
        elif isinstance(config, CacheConfig):
            resolved = config
        else:
            resolved = QUERY_CACHE_DEFAULTS.merged(**dict(config))
        self._metrics: CacheMetrics = metrics or NoOpCacheMetrics()
        self._cache: AdvancedCache[Any] = AdvancedCache(
            resolved,
            name=name,
            storage=storage,
            codec=codec,
            metrics=self._metrics,
            clock=clock,
        )
        self._pending: RequestCoalescer[Any] = RequestCoalescer()

    @property
    def name(self) -> str:
        return self._cache.name

    @property
    def cache(self) -> AdvancedCache[Any]:
        """Underlying policy cache."""
        return self._cache

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def _tags(self) -> dict[str, str]:
        return {"cache": self._cache.name}

    async def fetch(
        self,
        key: str,
        producer: Producer[R],
        ttl_s: float | None = None,
        force_refresh: bool = False,
    ) -> R:
        """
        Return the value for ``key``, running ``producer`` at most once per key
        across concurrent callers.

        ``force_refresh`` skips the cache lookup but still joins a call that is
        already in flight.
        """
        if not force_refresh:
            cached = self._cache.get(key, _MISSING)
            if cached is not _MISSING:
                return cached

        if key in self._pending:
            self._metrics.incr("query_joined_total", tags=self._tags)
        else:
            self._metrics.incr("query_producer_calls_total", tags=self._tags)

        return await self._pending.run(
            key,
            producer,
            on_result=lambda value: self._cache.set(key, value, ttl_s),
            on_error=lambda exc: self._record_failure(key, exc),
        )

    def invalidate(self, pattern: KeyPattern | None = None) -> int:
        """
        Remove cached keys matching ``pattern`` (everything when ``None``).

        Matching in-flight calls are detached: they still resolve their current
        joiners, but their result is not cached and the next ``fetch`` for the
        key starts a fresh producer call. Returns the number of cached keys
        removed.
        """
        if pattern is None:
            removed = len(self._cache)
            self._cache.clear()
            detached = self._pending.detach_all()
        else:
            matches = compile_key_pattern(pattern)
            removed = 0
            for key in self._cache.keys():
                if matches(key) and self._cache.delete(key):
                    removed += 1
            detached = self._pending.detach(matches)

        logger.debug(
            "QueryCache %s invalidated %d keys (%d in-flight detached, pattern=%r)",
            self._cache.name,
            removed,
            detached,
            pattern,
        )
        return removed

    async def prefetch(
        self,
        key: str,
        producer: Producer[Any],
        ttl_s: float | None = None,
    ) -> None:
        """Warm ``key`` when absent. Failures are logged, never raised."""
        if self._cache.has(key):
            return
        try:
            await self.fetch(key, producer, ttl_s)
        except Exception as exc:  # noqa: BLE001
            self._metrics.incr("query_prefetch_failures_total", tags=self._tags)
            logger.warning("QueryCache prefetch failed for key %s: %s", key, exc)

    def get_stats(self) -> CacheStats:
        return self._cache.get_stats()

    def clear(self) -> None:
        self.invalidate()

    def close(self) -> None:
        self._cache.close()

    async def aclose(self) -> None:
        await self._cache.aclose()

    async def __aenter__(self) -> "QueryCache":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    def _record_failure(self, key: str, exc: BaseException) -> None:
        self._metrics.incr("query_producer_failures_total", tags=self._tags)
        logger.debug("QueryCache producer failed for key %s: %s", key, exc)
