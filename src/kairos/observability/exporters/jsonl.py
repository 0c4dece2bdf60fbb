"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

JSONL exporter for append-only cache statistics envelopes.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .base import stats_schema_version


class StatsEnvelope(BaseModel):
    """One exported ``CacheManager.get_stats()`` snapshot."""

    model_config = ConfigDict(extra="ignore")

    schema_version: str = Field(default_factory=stats_schema_version)
    reported_at: float = Field(default_factory=time.time)
    stats: dict[str, Any] = Field(default_factory=dict)

    def cache_stats(self, name: str) -> dict[str, Any] | None:
        """Stats row of one named cache, or ``None`` when it was not reported."""
        caches = self.stats.get("caches") or {}
        row = caches.get(name)
        return dict(row) if isinstance(row, Mapping) else None

    @property
    def storage_usage_bytes(self) -> int:
        return int(self.stats.get("storage_usage_bytes", 0) or 0)

    @property
    def leak_suspected(self) -> bool:
        memory = self.stats.get("memory") or {}
        return bool(memory.get("is_leaking", False))


class JSONLStatsExporter:
    """Append stats envelopes to a JSONL file, one snapshot per line."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def export(self, stats: Mapping[str, Any]) -> None:
        line = StatsEnvelope(stats=dict(stats)).model_dump_json()
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._lock:
            with self._path.open("a", encoding="utf-8") as handle:
                handle.write(line + "\n")

    def history(self, *, since: float | None = None) -> list[StatsEnvelope]:
        """
        Validated snapshots in export order, optionally only those reported
        at or after ``since``. Blank lines are skipped.
        """
        if not self._path.exists():
            return []
        with self._lock:
            lines = self._path.read_text(encoding="utf-8").splitlines()
        envelopes = [
            StatsEnvelope.model_validate_json(line) for line in lines if line.strip()
        ]
        if since is None:
            return envelopes
        return [envelope for envelope in envelopes if envelope.reported_at >= since]
