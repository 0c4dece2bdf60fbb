"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Console exporter for human-readable cache statistics.
"""

from __future__ import annotations

import sys
from collections.abc import Mapping
from typing import Any, TextIO

_MB = 1024 * 1024


class ConsoleStatsExporter:
    """Pretty-print one aggregated statistics snapshot to console output."""

    def __init__(self, *, output: TextIO | None = None, color: bool = True) -> None:
        self._output = output or sys.stdout
        self._color = color

    def _c(self, text: str, code: str) -> str:
        if not self._color:
            return text
        return f"\033[{code}m{text}\033[0m"

    def export(self, stats: Mapping[str, Any]) -> None:
        out = self._output
        header = self._c("═" * 50, "36")
        out.write(f"\n{header}\n")
        out.write(self._c("  Kairos Cache Stats\n", "1;36"))
        out.write(f"{header}\n\n")

        for name, row in (stats.get("caches") or {}).items():
            hit_rate = float(row.get("hit_rate", 0.0)) * 100
            out.write(
                f"  {name:<12} size={row.get('size', 0)}/{row.get('max_size', 0)}"
                f"  hits={row.get('hit_count', 0)}  misses={row.get('miss_count', 0)}"
                f"  hit_rate={hit_rate:.1f}%\n"
            )

        usage = int(stats.get("storage_usage_bytes", 0) or 0)
        out.write(f"\n  Storage:   {usage / _MB:.2f}MB\n")

        memory = stats.get("memory") or {}
        if memory:
            leaking = memory.get("is_leaking", False)
            state = self._c("LEAK SUSPECTED", "31") if leaking else self._c("OK", "32")
            out.write(f"  Memory:    {state}")
            out.write(f" (trend {memory.get('trend_mb_per_sample', 0.0)}MB/sample)\n")

        out.write(f"\n{header}\n")
        out.flush()
