"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Policy cache package: entry store, eviction policies, durable storage and
the ``AdvancedCache`` built on top of them.
"""

from .advanced import AdvancedCache
from .codecs import JSONCodec, PayloadCodec, TypeAdapterCodec
from .eviction import (
    eviction_batch_size,
    list_eviction_policies,
    register_eviction_policy,
    resolve_eviction_policy,
    unregister_eviction_policy,
)
from .resource import RESOURCE_CACHE_DEFAULTS, ResourceCache, ResourceLoader
from .storage import (
    DurableStorage,
    FileStorage,
    InMemoryStorage,
    RedisStorage,
    create_storage,
)
from .store import EntryStore
from .types import (
    QUERY_CACHE_DEFAULTS,
    CacheConfig,
    CacheEntry,
    CacheStats,
    EvictionPolicy,
    JSONValue,
)

__all__ = [
    "AdvancedCache",
    "CacheConfig",
    "CacheEntry",
    "CacheStats",
    "EvictionPolicy",
    "EntryStore",
    "JSONValue",
    "QUERY_CACHE_DEFAULTS",
    "RESOURCE_CACHE_DEFAULTS",
    "PayloadCodec",
    "JSONCodec",
    "TypeAdapterCodec",
    "DurableStorage",
    "InMemoryStorage",
    "FileStorage",
    "RedisStorage",
    "create_storage",
    "ResourceCache",
    "ResourceLoader",
    "register_eviction_policy",
    "unregister_eviction_policy",
    "resolve_eviction_policy",
    "list_eviction_policies",
    "eviction_batch_size",
]
