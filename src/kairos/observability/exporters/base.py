"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Base exporter protocol for cache statistics snapshots.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

STATS_SCHEMA_VERSION = "cache_stats.v1"


def stats_schema_version() -> str:
    """Return the envelope schema version written by stats exporters."""
    return STATS_SCHEMA_VERSION


class StatsExporter(Protocol):
    """Exporter protocol for aggregated cache statistics."""

    def export(self, stats: Mapping[str, Any]) -> None:
        """Persist or display one statistics snapshot."""
        ...
