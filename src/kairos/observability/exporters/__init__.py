"""Exporters for cache statistics output formats."""

from .base import StatsExporter, stats_schema_version
from .console import ConsoleStatsExporter
from .jsonl import JSONLStatsExporter, StatsEnvelope

__all__ = [
    "StatsExporter",
    "stats_schema_version",
    "ConsoleStatsExporter",
    "JSONLStatsExporter",
    "StatsEnvelope",
]
