"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Keyed entry storage with no policy, clock or I/O concerns.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Generic

from .types import CacheEntry, T


class EntryStore(Generic[T]):
    """
    Ordered map of cache entries.

    Iteration order is write order: ``put`` moves a replaced key to the end,
    which eviction uses as its final tie-breaker.
    """

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry[T]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))

    def get(self, key: str) -> CacheEntry[T] | None:
        return self._entries.get(key)

    def put(self, key: str, entry: CacheEntry[T]) -> None:
        self._entries.pop(key, None)
        self._entries[key] = entry

    def touch(self, key: str, entry: CacheEntry[T]) -> None:
        """Swap in an updated entry without changing write order."""
        if key in self._entries:
            self._entries[key] = entry

    def pop(self, key: str) -> CacheEntry[T] | None:
        return self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def load(self, rows: Iterable[tuple[str, CacheEntry[T]]]) -> None:
        """Replace the whole content with ``rows`` in the given order."""
        self._entries = {key: entry for key, entry in rows}

    def keys(self) -> list[str]:
        return list(self._entries.keys())

    def entries(self) -> list[CacheEntry[T]]:
        return list(self._entries.values())

    def items(self) -> list[tuple[str, CacheEntry[T]]]:
        return list(self._entries.items())
