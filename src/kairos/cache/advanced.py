"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Policy-driven in-memory cache with expiry sweep and best-effort persistence.
"""

from __future__ import annotations

import json
import logging
import sys
import time
from collections.abc import Callable
from typing import Any, Generic

from pydantic import BaseModel, ConfigDict, Field

from ..observability.metrics import CacheMetrics, NoOpCacheMetrics
from ..runtime.scheduler import RecurringTask
from .codecs import JSONCodec, PayloadCodec
from .eviction import resolve_eviction_policy, select_victims
from .storage import DurableStorage
from .store import EntryStore
from .types import CacheConfig, CacheEntry, CacheStats, T

logger = logging.getLogger("kairos.cache")

ENTRY_OVERHEAD_BYTES = 64


class _StoredEntry(BaseModel):
    """One persisted entry row; ``data`` is the codec-encoded payload."""

    model_config = ConfigDict(extra="ignore")

    data: Any = None
    created_at: float
    ttl_s: float
    access_count: int = Field(default=0, ge=0)
    last_accessed_at: float = 0.0
    priority: float = 0.0


class _StoredStats(BaseModel):
    hit_count: int = Field(default=0, ge=0)
    miss_count: int = Field(default=0, ge=0)


class _Snapshot(BaseModel):
    """Persisted cache snapshot: entry rows in write order plus counters."""

    entries: list[tuple[str, _StoredEntry]] = Field(default_factory=list)
    stats: _StoredStats = Field(default_factory=_StoredStats)


class AdvancedCache(Generic[T]):
    """
    Generic keyed cache with TTL expiry, batch eviction and optional persistence.

    All store operations are synchronous. A background sweep removes expired
    entries every ``config.check_interval_s`` while an asyncio loop is
    running; call ``close()`` (or use ``async with``) to release it.
    """

    def __init__(
        self,
        config: CacheConfig | None = None,
        *,
        name: str = "cache",
        storage: DurableStorage | None = None,
        codec: PayloadCodec[T] | None = None,
        metrics: CacheMetrics | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config or CacheConfig()
        self._name = name
        self._storage = storage
        self._codec: PayloadCodec[T] = codec or JSONCodec()
        self._metrics: CacheMetrics = metrics or NoOpCacheMetrics()
        self._clock = clock
        self._sort_key = resolve_eviction_policy(self._config.eviction_policy)
        self._store: EntryStore[T] = EntryStore()
        self._hit_count = 0
        self._miss_count = 0
        self._closed = False
        self._sweeper = RecurringTask(
            self.sweep,
            self._config.check_interval_s,
            name=f"kairos-sweep:{name}",
        )

        if self._config.persist_to_storage and self._persistence_slot() is None:
            logger.debug(
                "Cache %s requested persistence without storage/storage_key; skipping",
                self._name,
            )
        self._load_from_storage()
        self._ensure_sweep()

    # -- properties -----------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    @property
    def config(self) -> CacheConfig:
        return self._config

    @property
    def storage(self) -> DurableStorage | None:
        return self._storage

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def sweep_running(self) -> bool:
        return self._sweeper.is_running

    def _persistence_slot(self) -> tuple[DurableStorage, str] | None:
        if not self._config.persistence_enabled or self._storage is None:
            return None
        return self._storage, str(self._config.storage_key)

    @property
    def _tags(self) -> dict[str, str]:
        return {"cache": self._name}

    # -- public operations ----------------------------------------------

    def get(self, key: str, default: Any = None) -> T | Any:
        """Return cached data for ``key``, or ``default`` on a miss."""
        entry = self._store.get(key)
        if entry is None:
            self._record_miss()
            return default

        now = self._clock()
        if entry.is_expired(now):
            self._store.pop(key)
            self._record_miss()
            self._metrics.incr("cache_expired_total", tags=self._tags)
            self._persist()
            return default

        self._store.touch(key, entry.touched(now))
        self._hit_count += 1
        self._metrics.incr("cache_hits_total", tags=self._tags)
        return entry.data

    def set(
        self,
        key: str,
        data: T,
        ttl_s: float | None = None,
        priority: float = 0.0,
    ) -> None:
        """Insert or replace ``key``; evicts a batch first when the cache is full."""
        now = self._clock()
        if key not in self._store and len(self._store) >= self._config.max_size:
            self._evict()

        self._store.put(
            key,
            CacheEntry(
                data=data,
                created_at=now,
                ttl_s=self._config.default_ttl_s if ttl_s is None else ttl_s,
                access_count=0,
                last_accessed_at=now,
                priority=priority,
            ),
        )
        self._ensure_sweep()
        self._persist()

    def delete(self, key: str) -> bool:
        removed = self._store.pop(key) is not None
        if removed:
            self._persist()
        return removed

    def has(self, key: str) -> bool:
        """Whether ``key`` is present and unexpired; touches no counters."""
        entry = self._store.get(key)
        return entry is not None and not entry.is_expired(self._clock())

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.has(key)

    def __len__(self) -> int:
        return len(self._store)

    def clear(self) -> None:
        self._store.clear()
        self._hit_count = 0
        self._miss_count = 0
        self._persist()

    def keys(self) -> list[str]:
        return self._store.keys()

    def values(self) -> list[T]:
        return [entry.data for entry in self._store.entries()]

    def items(self) -> list[tuple[str, T]]:
        return [(key, entry.data) for key, entry in self._store.items()]

    def entry(self, key: str) -> CacheEntry[T] | None:
        """Return the raw stored entry without touching counters or metadata."""
        return self._store.get(key)

    def get_stats(self) -> CacheStats:
        return CacheStats(
            size=len(self._store),
            max_size=self._config.max_size,
            hit_count=self._hit_count,
            miss_count=self._miss_count,
            estimated_memory_usage=self._estimate_memory_usage(),
        )

    def sweep(self) -> int:
        """Delete every expired entry now and return how many were removed."""
        now = self._clock()
        expired = [
            key for key, entry in self._store.items() if entry.is_expired(now)
        ]
        for key in expired:
            self._store.pop(key)
        if expired:
            self._metrics.incr("cache_expired_total", len(expired), tags=self._tags)
            logger.debug("Cache %s swept %d expired entries", self._name, len(expired))
        self._persist()
        return len(expired)

    def close(self) -> None:
        """Stop the background sweep. Entries stay readable."""
        self._closed = True
        self._sweeper.stop()

    async def aclose(self) -> None:
        self._closed = True
        await self._sweeper.wait_closed()

    async def __aenter__(self) -> "AdvancedCache[T]":
        self._ensure_sweep()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # -- internals ------------------------------------------------------

    def _record_miss(self) -> None:
        self._miss_count += 1
        self._metrics.incr("cache_misses_total", tags=self._tags)

    def _ensure_sweep(self) -> None:
        if not self._closed:
            self._sweeper.start()

    def _evict(self) -> None:
        victims = select_victims(self._store.items(), self._sort_key)
        for key in victims:
            self._store.pop(key)
        if victims:
            self._metrics.incr("cache_evictions_total", len(victims), tags=self._tags)
            logger.debug(
                "Cache %s evicted %d entries (policy=%s)",
                self._name,
                len(victims),
                getattr(self._config.eviction_policy, "value", self._config.eviction_policy),
            )

    def _estimate_memory_usage(self) -> int:
        total = 0
        for key, entry in self._store.items():
            total += len(key) * 2
            total += self._estimate_payload_bytes(entry.data)
            total += ENTRY_OVERHEAD_BYTES
        return total

    def _estimate_payload_bytes(self, data: T) -> int:
        try:
            return len(json.dumps(self._codec.encode(data), default=str)) * 2
        except (TypeError, ValueError):
            return sys.getsizeof(data)

    def _persist(self) -> None:
        slot = self._persistence_slot()
        if slot is None:
            return
        storage, storage_key = slot
        try:
            payload = {
                "entries": [
                    [
                        key,
                        {
                            "data": self._codec.encode(entry.data),
                            "created_at": entry.created_at,
                            "ttl_s": entry.ttl_s,
                            "access_count": entry.access_count,
                            "last_accessed_at": entry.last_accessed_at,
                            "priority": entry.priority,
                        },
                    ]
                    for key, entry in self._store.items()
                ],
                "stats": {
                    "hit_count": self._hit_count,
                    "miss_count": self._miss_count,
                },
            }
            storage.set_item(
                storage_key,
                json.dumps(payload, ensure_ascii=False, separators=(",", ":")),
            )
        except Exception as exc:  # noqa: BLE001
            self._metrics.incr("cache_persist_failures_total", tags=self._tags)
            logger.warning("Cache %s failed to save to storage: %s", self._name, exc)

    def _load_from_storage(self) -> None:
        slot = self._persistence_slot()
        if slot is None:
            return
        storage, storage_key = slot
        try:
            raw = storage.get_item(storage_key)
            if raw is None:
                return
            snapshot = _Snapshot.model_validate_json(raw)
            rows = [
                (
                    key,
                    CacheEntry(
                        data=self._codec.decode(row.data),
                        created_at=row.created_at,
                        ttl_s=row.ttl_s,
                        access_count=row.access_count,
                        last_accessed_at=row.last_accessed_at,
                        priority=row.priority,
                    ),
                )
                for key, row in snapshot.entries
            ]
        except Exception as exc:  # noqa: BLE001
            self._metrics.incr("cache_persist_failures_total", tags=self._tags)
            logger.warning("Cache %s failed to load from storage: %s", self._name, exc)
            return

        now = self._clock()
        live = [(key, entry) for key, entry in rows if not entry.is_expired(now)]
        self._store.load(live)
        self._hit_count = snapshot.stats.hit_count
        self._miss_count = snapshot.stats.miss_count
        dropped = len(rows) - len(live)
        logger.debug(
            "Cache %s restored %d entries from storage (%d expired dropped)",
            self._name,
            len(live),
            dropped,
        )
        if dropped:
            self._persist()
