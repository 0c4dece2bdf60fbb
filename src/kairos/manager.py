"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Cache registry aggregating named caches, durable storage and the leak detector.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Protocol

from .cache.resource import ResourceCache
from .cache.storage import DurableStorage, InMemoryStorage
from .cache.types import CacheStats, JSONValue
from .errors import CachePersistenceError
from .memory.leak import MemoryLeakDetector
from .observability.exporters.base import StatsExporter
from .observability.metrics import CacheMetrics, NoOpCacheMetrics
from .query.cache import QueryCache
from .runtime.cleanup import CleanupManager
from .runtime.scheduler import RecurringTask

logger = logging.getLogger("kairos.manager")

STORAGE_HIGH_WATER_BYTES = 5 * 1024 * 1024
DEFAULT_MONITOR_INTERVAL_S = 60.0
MANAGED_SLOT_PREFIX = "kairos_"
MANAGED_SLOT_SUFFIX = "_cache"

QUERY_CACHE_NAME = "query"
IMAGE_CACHE_NAME = "images"


class ManagedCache(Protocol):
    """Anything the registry can report on and clear."""

    def get_stats(self) -> CacheStats | Mapping[str, Any]: ...


class CacheManager:
    """
    Application-wide cache registry.

    Create one at startup and ``close()`` it at shutdown. By default it owns an
    ``InMemoryStorage``, a ``QueryCache`` persisted into that storage, an
    ``"images"`` ``ResourceCache`` and a ``MemoryLeakDetector``; pass instances
    to override any of them.
    """

    def __init__(
        self,
        *,
        storage: DurableStorage | None = None,
        query_cache: QueryCache | None = None,
        image_cache: ResourceCache[Any] | None = None,
        leak_detector: MemoryLeakDetector | None = None,
        metrics: CacheMetrics | None = None,
    ) -> None:
        self._storage: DurableStorage = storage or InMemoryStorage()
        self._metrics: CacheMetrics = metrics or NoOpCacheMetrics()
        self._query_cache = query_cache or QueryCache(
            name=QUERY_CACHE_NAME,
            storage=self._storage,
            metrics=self._metrics,
        )
        self._image_cache: ResourceCache[Any] = image_cache or ResourceCache(
            name=IMAGE_CACHE_NAME,
            metrics=self._metrics,
        )
        self._leak_detector = leak_detector or MemoryLeakDetector(metrics=self._metrics)
        self._caches: dict[str, ManagedCache] = {}
        self._cleanup = CleanupManager()
        self._monitor: RecurringTask | None = None
        self._exporter: StatsExporter | None = None

        self.register(QUERY_CACHE_NAME, self._query_cache)
        self.register(IMAGE_CACHE_NAME, self._image_cache)
        self._cleanup.add_cleanup(self._leak_detector.stop_monitoring)

    # -- registry -------------------------------------------------------

    @property
    def query_cache(self) -> QueryCache:
        return self._query_cache

    @property
    def image_cache(self) -> ResourceCache[Any]:
        return self._image_cache

    @property
    def leak_detector(self) -> MemoryLeakDetector:
        return self._leak_detector

    @property
    def storage(self) -> DurableStorage:
        return self._storage

    @property
    def is_monitoring(self) -> bool:
        return self._monitor is not None and self._monitor.is_running

    def register(self, name: str, cache: ManagedCache, *, overwrite: bool = False) -> None:
        """Register one cache under ``name`` for stats and global clears."""
        key = name.strip()
        if not key:
            raise ValueError("Cache name must be non-empty")
        if key in self._caches and not overwrite:
            raise ValueError(f"Cache already registered: {key}")
        self._caches[key] = cache
        close = getattr(cache, "close", None)
        if callable(close):
            self._cleanup.add_cleanup(close)

    def get(self, name: str) -> ManagedCache | None:
        return self._caches.get(name)

    def names(self) -> list[str]:
        return sorted(self._caches.keys())

    # -- global operations ----------------------------------------------

    def clear_all(self) -> None:
        """Invalidate every managed cache and drop managed storage slots."""
        for name, cache in self._caches.items():
            invalidate = getattr(cache, "invalidate", None)
            clear = invalidate if callable(invalidate) else getattr(cache, "clear", None)
            if not callable(clear):
                logger.debug("Cache %s has no clear/invalidate; skipped", name)
                continue
            try:
                clear()
            except Exception:  # noqa: BLE001
                logger.exception("CacheManager failed to clear cache %s", name)

        try:
            for key in self._storage.keys():
                if key.startswith(MANAGED_SLOT_PREFIX) and key.endswith(MANAGED_SLOT_SUFFIX):
                    self._storage.remove_item(key)
        except CachePersistenceError as exc:
            logger.warning("CacheManager failed to clear storage slots: %s", exc)
        logger.info("CacheManager cleared %d caches", len(self._caches))

    def get_stats(self) -> dict[str, JSONValue]:
        caches: dict[str, JSONValue] = {}
        for name, cache in self._caches.items():
            stats = cache.get_stats()
            caches[name] = stats.to_dict() if isinstance(stats, CacheStats) else dict(stats)
        return {
            "caches": caches,
            "storage_usage_bytes": self._storage_usage(),
            "memory": self._leak_detector.get_report().to_dict(),
        }

    # -- monitoring -----------------------------------------------------

    def start_monitoring(
        self,
        interval_s: float = DEFAULT_MONITOR_INTERVAL_S,
        *,
        exporter: StatsExporter | None = None,
    ) -> bool:
        """
        Log aggregate stats every ``interval_s`` seconds and clear everything
        when durable storage grows past ``STORAGE_HIGH_WATER_BYTES``.

        Returns ``False`` when no event loop is running.
        """
        if self.is_monitoring:
            return True
        handle = RecurringTask(self.monitor_tick, interval_s, name="kairos-cache-manager")
        if not handle.start():
            logger.warning("CacheManager monitoring needs a running event loop")
            return False
        self._monitor = self._cleanup.track_recurring(handle)
        self._exporter = exporter
        logger.info("CacheManager monitoring started (interval=%.1fs)", interval_s)
        return True

    def stop_monitoring(self) -> None:
        if self._monitor is not None:
            self._monitor.stop()
            self._cleanup.untrack_recurring(self._monitor)
            self._monitor = None

    def monitor_tick(self) -> dict[str, JSONValue]:
        """Run one monitoring pass and return the stats it observed."""
        stats = self.get_stats()
        logger.info("CacheManager stats: %s", stats)
        if self._exporter is not None:
            try:
                self._exporter.export(stats)
            except Exception:  # noqa: BLE001
                logger.exception("CacheManager stats export failed")

        usage = stats["storage_usage_bytes"]
        if isinstance(usage, int) and usage > STORAGE_HIGH_WATER_BYTES:
            logger.warning(
                "CacheManager storage usage %d bytes above %d; clearing all caches",
                usage,
                STORAGE_HIGH_WATER_BYTES,
            )
            self._metrics.incr("cache_manager_auto_clears_total")
            self.clear_all()
        return stats

    # -- lifecycle ------------------------------------------------------

    def close(self) -> None:
        """Stop monitoring and release every background task the registry owns."""
        self._monitor = None
        self._cleanup.cleanup()

    async def __aenter__(self) -> "CacheManager":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _storage_usage(self) -> int:
        try:
            return int(self._storage.usage_bytes())
        except Exception as exc:  # noqa: BLE001
            logger.warning("CacheManager failed to calculate storage usage: %s", exc)
            return 0
