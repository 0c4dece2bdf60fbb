"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Memory probes: callables that take one ``MemorySample``.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Protocol

import psutil

from .types import MemorySample

logger = logging.getLogger("kairos.memory.probe")


class MemoryProbe(Protocol):
    """Returns the current memory reading, or ``None`` when unavailable."""

    def __call__(self) -> MemorySample | None: ...


class ProcessMemoryProbe:
    """
    psutil-backed probe for one process.

    ``used_bytes`` is resident set size, ``total_bytes`` virtual size and
    ``limit_bytes`` the host's physical memory.
    """

    def __init__(
        self,
        pid: int | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._process = psutil.Process(pid)
        self._clock = clock

    @property
    def pid(self) -> int:
        return self._process.pid

    def __call__(self) -> MemorySample | None:
        try:
            info = self._process.memory_info()
            limit = psutil.virtual_memory().total
        except psutil.Error as exc:
            logger.warning("Memory probe failed for pid %s: %s", self._process.pid, exc)
            return None
        return MemorySample(
            used_bytes=int(info.rss),
            total_bytes=int(info.vms),
            limit_bytes=int(limit),
            taken_at=self._clock(),
        )


def get_memory_info() -> MemorySample | None:
    """Sample the current process once."""
    return ProcessMemoryProbe()()
