"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Process memory sampling, leak-trend detection and threshold alerts.
"""

from __future__ import annotations

from .leak import (
    DETECTION_WINDOW,
    LEAK_TREND_THRESHOLD_BYTES,
    MAX_SAMPLES,
    MemoryLeakDetector,
    linear_trend,
)
from .monitor import MemoryMonitor
from .probe import MemoryProbe, ProcessMemoryProbe, get_memory_info
from .types import (
    MEMORY_THRESHOLDS,
    LeakReport,
    MemoryLevel,
    MemorySample,
    MemoryThresholds,
)

__all__ = [
    "MemorySample",
    "MemoryThresholds",
    "MemoryLevel",
    "MEMORY_THRESHOLDS",
    "LeakReport",
    "MemoryProbe",
    "ProcessMemoryProbe",
    "get_memory_info",
    "MemoryLeakDetector",
    "MemoryMonitor",
    "linear_trend",
    "LEAK_TREND_THRESHOLD_BYTES",
    "MAX_SAMPLES",
    "DETECTION_WINDOW",
]
