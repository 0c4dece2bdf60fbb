"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Counter adapters for cache, query and memory instrumentation.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol


class CacheMetrics(Protocol):
    """Minimal metrics interface used by caches and monitors."""

    def incr(
        self, name: str, value: int = 1, *, tags: Mapping[str, str] | None = None
    ) -> None:
        """Increment a counter metric."""


class NoOpCacheMetrics:
    """Default metrics sink when no metrics backend is provided."""

    def incr(
        self, name: str, value: int = 1, *, tags: Mapping[str, str] | None = None
    ) -> None:
        _ = name
        _ = value
        _ = tags


class InMemoryCacheMetrics:
    """Metrics sink that keeps counter totals in process memory."""

    def __init__(self) -> None:
        self._totals: dict[tuple[str, tuple[tuple[str, str], ...]], int] = {}

    def incr(
        self, name: str, value: int = 1, *, tags: Mapping[str, str] | None = None
    ) -> None:
        key = (name, tuple(sorted((tags or {}).items())))
        self._totals[key] = self._totals.get(key, 0) + int(value)

    def total(self, name: str, *, tags: Mapping[str, str] | None = None) -> int:
        """Sum of one counter, optionally restricted to rows carrying ``tags``."""
        wanted = set((tags or {}).items())
        return sum(
            count
            for (metric, labels), count in self._totals.items()
            if metric == name and wanted.issubset(labels)
        )

    def reset(self) -> None:
        self._totals.clear()


class PrometheusCacheMetrics(CacheMetrics):
    """
    Prometheus-backed cache metrics adapter.

    Requires `prometheus_client` package.
    """

    def __init__(self, *, namespace: str = "kairos", registry: object | None = None) -> None:
        try:
            from prometheus_client import REGISTRY, Counter
        except ModuleNotFoundError as exc:  # pragma: no cover
            raise RuntimeError(
                "PrometheusCacheMetrics requires `prometheus_client` to be installed."
            ) from exc

        self._Counter = Counter
        self._namespace = namespace
        self._registry = registry if registry is not None else REGISTRY
        self._counters: dict[str, object] = {}

    def incr(self, name: str, value: int = 1, *, tags: Mapping[str, str] | None = None) -> None:
        label_names = tuple(sorted((tags or {}).keys()))
        key = f"{name}|{','.join(label_names)}"
        counter = self._counters.get(key)
        if counter is None:
            counter = self._Counter(
                name=name,
                documentation=f"Kairos cache metric {name}",
                namespace=self._namespace,
                labelnames=label_names,
                registry=self._registry,
            )
            self._counters[key] = counter

        if label_names:
            label_values = [str((tags or {})[label]) for label in label_names]
            counter.labels(*label_values).inc(value)
        else:
            counter.inc(value)
