"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Client-side caching and request coordination.

Quick start::

    from kairos import CacheManager

    async with CacheManager() as caches:
        report = await caches.query_cache.fetch("report:42", load_report)
        caches.start_monitoring(60)
"""

from .cache import (
    AdvancedCache,
    CacheConfig,
    CacheEntry,
    CacheStats,
    EvictionPolicy,
    FileStorage,
    InMemoryStorage,
    RedisStorage,
    ResourceCache,
    register_eviction_policy,
)
from .errors import (
    CachePersistenceError,
    EvictionPolicyError,
    KairosCacheError,
    ResourceLoadError,
)
from .manager import CacheManager
from .memory import MemoryLeakDetector, MemoryMonitor, MemorySample
from .query import QueryCache
from .runtime import CleanupManager, RecurringTask, RequestCoalescer

__all__ = [
    "AdvancedCache",
    "CacheConfig",
    "CacheEntry",
    "CacheStats",
    "EvictionPolicy",
    "InMemoryStorage",
    "FileStorage",
    "RedisStorage",
    "ResourceCache",
    "register_eviction_policy",
    "QueryCache",
    "MemoryLeakDetector",
    "MemoryMonitor",
    "MemorySample",
    "CacheManager",
    "CleanupManager",
    "RecurringTask",
    "RequestCoalescer",
    "KairosCacheError",
    "CachePersistenceError",
    "EvictionPolicyError",
    "ResourceLoadError",
]
