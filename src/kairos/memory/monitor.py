"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Threshold monitor that alerts on high memory usage with cooldowns.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from ..runtime.scheduler import RecurringTask
from .probe import MemoryProbe, ProcessMemoryProbe
from .types import MEMORY_THRESHOLDS, MemorySample, MemoryThresholds

logger = logging.getLogger("kairos.memory.monitor")

CRITICAL_COOLDOWN_S = 30.0
WARNING_COOLDOWN_S = 60.0

AlertCallback = Callable[[MemorySample], None]


class MemoryMonitor:
    """
    Periodic usage check against ``MemoryThresholds``.

    Critical (and emergency) readings alert at most every 30 s, warnings at
    most every 60 s; both cooldowns share one last-alert clock.
    """

    def __init__(
        self,
        probe: MemoryProbe | None = None,
        *,
        thresholds: MemoryThresholds = MEMORY_THRESHOLDS,
        on_warning: AlertCallback | None = None,
        on_critical: AlertCallback | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._probe: MemoryProbe = probe or ProcessMemoryProbe()
        self._thresholds = thresholds
        self._on_warning = on_warning
        self._on_critical = on_critical
        self._clock = clock
        self._last_alert_at: float | None = None
        self._handle: RecurringTask | None = None

    @property
    def is_running(self) -> bool:
        return self._handle is not None and self._handle.is_running

    def check(self) -> MemorySample | None:
        sample = self._probe()
        if sample is None:
            return None

        now = self._clock()
        since = None if self._last_alert_at is None else now - self._last_alert_at
        level = self._thresholds.classify(sample.used_percent)

        if level in ("critical", "emergency"):
            if since is None or since > CRITICAL_COOLDOWN_S:
                logger.warning(
                    "Critical memory usage (%s): %.1f%% of %d bytes",
                    level,
                    sample.used_percent,
                    sample.limit_bytes,
                )
                self._alert(self._on_critical, sample)
                self._last_alert_at = now
        elif level == "warning":
            if since is None or since > WARNING_COOLDOWN_S:
                logger.warning(
                    "High memory usage: %.1f%% of %d bytes",
                    sample.used_percent,
                    sample.limit_bytes,
                )
                self._alert(self._on_warning, sample)
                self._last_alert_at = now
        return sample

    def start(self, interval_s: float = 5.0) -> bool:
        if self.is_running:
            return True
        handle = RecurringTask(self.check, interval_s, name="kairos-memory-monitor")
        if not handle.start():
            return False
        self._handle = handle
        return True

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.stop()
            self._handle = None

    @staticmethod
    def _alert(callback: AlertCallback | None, sample: MemorySample) -> None:
        if callback is None:
            return
        try:
            callback(sample)
        except Exception:  # noqa: BLE001
            logger.exception("MemoryMonitor alert callback failed")
