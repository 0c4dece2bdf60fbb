"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Statistical memory-leak detector over a rolling window of samples.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable, Sequence

from ..observability.metrics import CacheMetrics, NoOpCacheMetrics
from ..runtime.scheduler import RecurringTask
from .probe import MemoryProbe, ProcessMemoryProbe
from .types import LeakReport, MemorySample

logger = logging.getLogger("kairos.memory.leak")

LEAK_TREND_THRESHOLD_BYTES = 1_000_000
MAX_SAMPLES = 100
DETECTION_WINDOW = 10
DEFAULT_SAMPLE_INTERVAL_S = 10.0

_MB = 1024 * 1024

LeakCallback = Callable[[LeakReport], None]


def linear_trend(values: Sequence[float]) -> float:
    """Least-squares slope of ``values`` against their index (0 for < 2 points)."""
    n = len(values)
    if n < 2:
        return 0.0
    sum_x = n * (n - 1) / 2
    sum_y = float(sum(values))
    sum_xy = float(sum(index * value for index, value in enumerate(values)))
    sum_xx = n * (n - 1) * (2 * n - 1) / 6
    return (n * sum_xy - sum_x * sum_y) / (n * sum_xx - sum_x * sum_x)


class MemoryLeakDetector:
    """
    Sample memory periodically and flag a persistently rising trend.

    Detection runs after each sample once ``DETECTION_WINDOW`` samples exist,
    fitting the slope of ``used_bytes`` over the most recent window. A slope
    above ``threshold_bytes`` per sample is logged, counted and reported to
    ``on_leak``. This is a heuristic for operators; bulk work that allocates
    steadily trips it too.
    """

    def __init__(
        self,
        probe: MemoryProbe | None = None,
        *,
        threshold_bytes: float = LEAK_TREND_THRESHOLD_BYTES,
        max_samples: int = MAX_SAMPLES,
        metrics: CacheMetrics | None = None,
        on_leak: LeakCallback | None = None,
    ) -> None:
        if max_samples < DETECTION_WINDOW:
            raise ValueError(f"max_samples must be >= {DETECTION_WINDOW}")
        self._probe: MemoryProbe = probe or ProcessMemoryProbe()
        self._threshold = threshold_bytes
        self._samples: deque[MemorySample] = deque(maxlen=max_samples)
        self._metrics: CacheMetrics = metrics or NoOpCacheMetrics()
        self._on_leak = on_leak
        self._handle: RecurringTask | None = None
        self._leak_suspected = False

    @property
    def is_monitoring(self) -> bool:
        return self._handle is not None and self._handle.is_running

    @property
    def leak_suspected(self) -> bool:
        """Outcome of the most recent detection pass."""
        return self._leak_suspected

    @property
    def sample_count(self) -> int:
        return len(self._samples)

    def start_monitoring(self, interval_s: float = DEFAULT_SAMPLE_INTERVAL_S) -> bool:
        """
        Begin sampling every ``interval_s`` seconds on the running loop.

        No-op when already monitoring. Returns ``False`` if no event loop is
        running, leaving the detector idle.
        """
        if self.is_monitoring:
            return True
        handle = RecurringTask(self.sample_once, interval_s, name="kairos-leak-detector")
        if not handle.start():
            logger.warning("MemoryLeakDetector needs a running event loop to monitor")
            return False
        self._handle = handle
        logger.info("MemoryLeakDetector started (interval=%.1fs)", interval_s)
        return True

    def stop_monitoring(self) -> None:
        if self._handle is None:
            return
        self._handle.stop()
        self._handle = None
        logger.info("MemoryLeakDetector stopped")

    def sample_once(self) -> MemorySample | None:
        """Take one sample from the probe and run detection; ``None`` skips."""
        sample = self._probe()
        if sample is None:
            return None
        self.record(sample)
        return sample

    def record(self, sample: MemorySample) -> bool:
        """Append ``sample`` to the window and return whether a leak is suspected."""
        self._samples.append(sample)
        self._leak_suspected = self._detect()
        return self._leak_suspected

    def get_report(self) -> LeakReport:
        measurements = list(self._samples)
        trend = linear_trend([m.used_bytes for m in measurements])
        return LeakReport(
            measurements=measurements,
            trend=trend,
            is_leaking=trend > self._threshold,
        )

    def reset(self) -> None:
        self._samples.clear()
        self._leak_suspected = False

    def _detect(self) -> bool:
        if len(self._samples) < DETECTION_WINDOW:
            return False
        recent = list(self._samples)[-DETECTION_WINDOW:]
        trend = linear_trend([m.used_bytes for m in recent])
        if trend <= self._threshold:
            return False

        current = recent[-1]
        logger.warning(
            "Potential memory leak: usage trending upward (trend=%.2fMB/sample, current=%.2fMB, used=%.2f%%)",
            trend / _MB,
            current.used_bytes / _MB,
            current.used_percent,
        )
        self._metrics.incr("memory_leak_suspected_total")
        if self._on_leak is not None:
            try:
                self._on_leak(self.get_report())
            except Exception:  # noqa: BLE001
                logger.exception("MemoryLeakDetector on_leak callback failed")
        return True
