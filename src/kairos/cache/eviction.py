"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Eviction policy registry and victim selection.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from threading import Lock
from typing import Any

from ..errors import EvictionPolicyError
from .types import CacheEntry, EvictionPolicy

# Sort key over one entry; lower values are evicted first.
EvictionSortKey = Callable[[CacheEntry[Any]], float]

EVICTION_FRACTION = 0.1

_POLICIES: dict[str, EvictionSortKey] = {
    EvictionPolicy.LRU.value: lambda entry: entry.last_accessed_at,
    EvictionPolicy.LFU.value: lambda entry: entry.access_count,
    EvictionPolicy.TTL.value: lambda entry: entry.expires_at,
    EvictionPolicy.FIFO.value: lambda entry: entry.created_at,
}
_BUILTIN = frozenset(_POLICIES)
_LOCK = Lock()


def _normalize(name: EvictionPolicy | str) -> str:
    if isinstance(name, EvictionPolicy):
        return name.value
    return str(name).strip().upper()


def register_eviction_policy(
    name: str,
    sort_key: EvictionSortKey,
    *,
    overwrite: bool = False,
) -> None:
    """Register one custom eviction ordering under ``name``."""
    key = _normalize(name)
    if not key:
        raise EvictionPolicyError("Eviction policy name must be non-empty")
    if key in _BUILTIN:
        raise EvictionPolicyError(f"Cannot replace built-in eviction policy: {key}")

    with _LOCK:
        if key in _POLICIES and not overwrite:
            raise EvictionPolicyError(f"Eviction policy already registered: {key}")
        _POLICIES[key] = sort_key


def unregister_eviction_policy(name: str) -> None:
    key = _normalize(name)
    if key in _BUILTIN:
        raise EvictionPolicyError(f"Cannot remove built-in eviction policy: {key}")
    with _LOCK:
        _POLICIES.pop(key, None)


def resolve_eviction_policy(name: EvictionPolicy | str) -> EvictionSortKey:
    """Resolve a policy name into its sort key."""
    key = _normalize(name)
    with _LOCK:
        resolved = _POLICIES.get(key)
    if resolved is None:
        raise EvictionPolicyError(f"Unknown eviction policy '{name}'")
    return resolved


def list_eviction_policies() -> list[str]:
    with _LOCK:
        return sorted(_POLICIES.keys())


def eviction_batch_size(size: int) -> int:
    """Number of entries removed by one eviction pass: 10% rounded up, at least 1."""
    return max(1, math.ceil(size * EVICTION_FRACTION))


def select_victims(
    rows: list[tuple[str, CacheEntry[Any]]],
    sort_key: EvictionSortKey,
) -> list[str]:
    """
    Return the keys to evict from ``rows`` (given in write order).

    Ties on the policy value break on ascending priority, then on write order.
    """
    if not rows:
        return []
    ranked = sorted(
        enumerate(rows),
        key=lambda item: (sort_key(item[1][1]), item[1][1].priority, item[0]),
    )
    count = eviction_batch_size(len(rows))
    return [key for _, (key, _) in ranked[:count]]
