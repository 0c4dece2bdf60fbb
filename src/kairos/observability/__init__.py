"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Observability package for kairos caches.

Provides counter adapters (``CacheMetrics``) that caches, query layers and
memory monitors report into, plus exporters for aggregated stats snapshots.

Quick start::

    from kairos.observability import InMemoryCacheMetrics, JSONLStatsExporter

    metrics = InMemoryCacheMetrics()
    manager = CacheManager(metrics=metrics)
    manager.start_monitoring(60, exporter=JSONLStatsExporter("stats.jsonl"))
"""

from .exporters import (
    ConsoleStatsExporter,
    JSONLStatsExporter,
    StatsEnvelope,
    StatsExporter,
)
from .metrics import (
    CacheMetrics,
    InMemoryCacheMetrics,
    NoOpCacheMetrics,
    PrometheusCacheMetrics,
)

__all__ = [
    "CacheMetrics",
    "NoOpCacheMetrics",
    "InMemoryCacheMetrics",
    "PrometheusCacheMetrics",
    "StatsExporter",
    "ConsoleStatsExporter",
    "JSONLStatsExporter",
    "StatsEnvelope",
]
