"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Memory sample and report models shared by the leak detector and monitor.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from ..cache.types import JSONValue

MemoryLevel = Literal["ok", "warning", "critical", "emergency"]

_MB = 1024 * 1024


@dataclass(frozen=True, slots=True)
class MemorySample:
    """One process memory reading."""

    used_bytes: int
    total_bytes: int
    limit_bytes: int
    taken_at: float

    @property
    def used_fraction(self) -> float:
        if self.limit_bytes <= 0:
            return 0.0
        return self.used_bytes / self.limit_bytes

    @property
    def used_percent(self) -> float:
        return self.used_fraction * 100

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "used_bytes": self.used_bytes,
            "total_bytes": self.total_bytes,
            "limit_bytes": self.limit_bytes,
            "used_fraction": round(self.used_fraction, 4),
            "taken_at": self.taken_at,
        }


@dataclass(frozen=True, slots=True)
class MemoryThresholds:
    """Usage percentages (of the limit) that trigger monitor alerts."""

    warning: float = 70.0
    critical: float = 85.0
    emergency: float = 95.0

    def __post_init__(self) -> None:
        if not 0 < self.warning <= self.critical <= self.emergency <= 100:
            raise ValueError("thresholds must satisfy 0 < warning <= critical <= emergency <= 100")

    def classify(self, percent: float) -> MemoryLevel:
        if percent >= self.emergency:
            return "emergency"
        if percent >= self.critical:
            return "critical"
        if percent >= self.warning:
            return "warning"
        return "ok"


MEMORY_THRESHOLDS = MemoryThresholds()


@dataclass(slots=True)
class LeakReport:
    """Snapshot of the detector window and its fitted trend."""

    measurements: list[MemorySample] = field(default_factory=list)
    trend: float = 0.0
    is_leaking: bool = False

    @property
    def current(self) -> MemorySample | None:
        return self.measurements[-1] if self.measurements else None

    def to_dict(self) -> dict[str, JSONValue]:
        current = self.current
        return {
            "samples": len(self.measurements),
            "trend_bytes_per_sample": round(self.trend, 1),
            "trend_mb_per_sample": round(self.trend / _MB, 3),
            "is_leaking": self.is_leaking,
            "current": current.to_dict() if current is not None else None,
        }
