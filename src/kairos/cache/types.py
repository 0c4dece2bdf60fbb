"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Core data models for the policy cache: entries, configuration and stats.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeAlias, TypeVar

T = TypeVar("T")

JSONPrimitive: TypeAlias = str | int | float | bool | None
JSONValue: TypeAlias = JSONPrimitive | list["JSONValue"] | dict[str, "JSONValue"]


class EvictionPolicy(str, Enum):
    """Built-in orderings used to pick eviction victims."""

    LRU = "LRU"
    LFU = "LFU"
    TTL = "TTL"
    FIFO = "FIFO"


@dataclass(frozen=True, slots=True)
class CacheEntry(Generic[T]):
    """One stored value with expiry and access metadata."""

    data: T
    created_at: float
    ttl_s: float
    access_count: int = 0
    last_accessed_at: float = 0.0
    priority: float = 0.0

    @property
    def expires_at(self) -> float:
        return self.created_at + self.ttl_s

    def is_expired(self, now: float) -> bool:
        return now - self.created_at > self.ttl_s

    def touched(self, now: float) -> "CacheEntry[T]":
        """Return a copy recording one more successful read at ``now``."""
        return dataclasses.replace(
            self,
            access_count=self.access_count + 1,
            last_accessed_at=now,
        )


@dataclass(frozen=True, slots=True)
class CacheConfig:
    """
    Configuration for one ``AdvancedCache``.

    Attributes:
        max_size: Hard cap on entry count; eviction runs before an insert
            that would exceed it.
        default_ttl_s: TTL applied when ``set`` omits ``ttl_s``.
        check_interval_s: Cadence of the background expiry sweep.
        eviction_policy: Built-in policy or a registered custom policy name.
        persist_to_storage: Mirror the entry map into durable storage.
        storage_key: Storage slot name; persistence is skipped when unset.
    """

    max_size: int = 1000
    default_ttl_s: float = 5 * 60.0
    check_interval_s: float = 60.0
    eviction_policy: EvictionPolicy | str = EvictionPolicy.LRU
    persist_to_storage: bool = False
    storage_key: str | None = None

    def __post_init__(self) -> None:
        if self.max_size < 1:
            raise ValueError("max_size must be >= 1")
        if self.default_ttl_s <= 0:
            raise ValueError("default_ttl_s must be > 0")
        if self.check_interval_s <= 0:
            raise ValueError("check_interval_s must be > 0")

    @property
    def persistence_enabled(self) -> bool:
        return self.persist_to_storage and bool(self.storage_key)

    def merged(self, **overrides: Any) -> "CacheConfig":
        """Return a copy with ``overrides`` applied on top of this config."""
        return dataclasses.replace(self, **overrides)

    @staticmethod
    def from_mapping(mapping: Mapping[str, Any]) -> "CacheConfig":
        """Build a config from a plain mapping of field names to values."""
        known = {f.name for f in dataclasses.fields(CacheConfig)}
        unknown = sorted(set(mapping) - known)
        if unknown:
            raise ValueError(f"Unknown cache config keys: {', '.join(unknown)}")
        return CacheConfig(**dict(mapping))


QUERY_CACHE_DEFAULTS = CacheConfig(
    max_size=500,
    default_ttl_s=5 * 60.0,
    persist_to_storage=True,
    storage_key="kairos_query_cache",
)


@dataclass(slots=True)
class CacheStats:
    """Read-only statistics snapshot for one cache."""

    size: int = 0
    max_size: int = 0
    hit_count: int = 0
    miss_count: int = 0
    estimated_memory_usage: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hit_count + self.miss_count
        if total == 0:
            return 0.0
        return self.hit_count / total

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "size": self.size,
            "max_size": self.max_size,
            "hit_count": self.hit_count,
            "miss_count": self.miss_count,
            "hit_rate": round(self.hit_rate, 4),
            "estimated_memory_usage": self.estimated_memory_usage,
        }
