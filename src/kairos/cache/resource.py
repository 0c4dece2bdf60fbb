"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Locator-keyed resource cache (images, blobs) with deduplicated loads.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Iterable
from typing import Generic

from ..errors import ResourceLoadError
from ..observability.metrics import CacheMetrics
from ..runtime.coalescing import RequestCoalescer
from .advanced import AdvancedCache
from .types import CacheConfig, CacheStats, T

# Loader signature: receives the locator, resolves to the resource.
ResourceLoader = Callable[[str], Awaitable[T]]

RESOURCE_CACHE_DEFAULTS = CacheConfig(
    max_size=200,
    default_ttl_s=30 * 60.0,
    persist_to_storage=False,
)

_MISSING = object()


class ResourceCache(Generic[T]):
    """
    Cache of loaded resources keyed by locator (usually a URL).

    Concurrent ``load`` calls for one locator share a single loader call.
    Resources are kept in memory only.
    """

    def __init__(
        self,
        config: CacheConfig | None = None,
        *,
        name: str = "resources",
        metrics: CacheMetrics | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._cache: AdvancedCache[T] = AdvancedCache(
            config or RESOURCE_CACHE_DEFAULTS,
            name=name,
            metrics=metrics,
            clock=clock,
        )
        self._loading: RequestCoalescer[T] = RequestCoalescer()

    @property
    def name(self) -> str:
        return self._cache.name

    async def load(self, locator: str, loader: ResourceLoader[T]) -> T:
        """Return the cached resource or load it once for all concurrent callers."""
        cached = self._cache.get(locator, _MISSING)
        if cached is not _MISSING:
            return cached
        try:
            return await self._loading.run(
                locator,
                lambda: loader(locator),
                on_result=lambda value: self._cache.set(locator, value),
            )
        except ResourceLoadError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise ResourceLoadError(locator) from exc

    async def preload(self, locators: Iterable[str], loader: ResourceLoader[T]) -> list[T]:
        """Load many locators concurrently; the first failure propagates."""
        return list(
            await asyncio.gather(*(self.load(locator, loader) for locator in locators))
        )

    def has(self, locator: str) -> bool:
        return self._cache.has(locator)

    def clear(self) -> None:
        self._cache.clear()
        self._loading.detach_all()

    def size(self) -> int:
        return len(self._cache)

    def get_stats(self) -> CacheStats:
        return self._cache.get_stats()

    def close(self) -> None:
        self._cache.close()
