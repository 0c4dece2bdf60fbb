"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Background task and request coordination primitives.
"""

from .cleanup import CleanupManager
from .coalescing import RequestCoalescer
from .scheduler import RecurringTask, TickCallback

__all__ = [
    "CleanupManager",
    "RecurringTask",
    "RequestCoalescer",
    "TickCallback",
]
