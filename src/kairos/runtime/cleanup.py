"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Ownership tracker that releases background resources in one call.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from .scheduler import RecurringTask

logger = logging.getLogger("kairos.runtime.cleanup")


class CleanupManager:
    """
    Collect recurring tasks, asyncio tasks and cleanup callbacks owned by one
    component so they can be disposed together.

    ``cleanup()`` stops recurring tasks, cancels pending asyncio tasks and then
    runs callbacks in registration order. A failing callback is logged and the
    remaining callbacks still run.
    """

    def __init__(self) -> None:
        self._recurring: list[RecurringTask] = []
        self._tasks: set[asyncio.Task[object]] = set()
        self._callbacks: list[Callable[[], None]] = []

    def add_cleanup(self, fn: Callable[[], None]) -> None:
        self._callbacks.append(fn)

    def track_recurring(self, handle: RecurringTask) -> RecurringTask:
        if handle not in self._recurring:
            self._recurring.append(handle)
        return handle

    def untrack_recurring(self, handle: RecurringTask) -> None:
        """Forget a handle its owner already stopped."""
        if handle in self._recurring:
            self._recurring.remove(handle)

    def track_task(self, task: asyncio.Task[object]) -> asyncio.Task[object]:
        """Track one asyncio task; finished tasks drop out automatically."""
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @property
    def tracked_count(self) -> int:
        return len(self._recurring) + len(self._tasks) + len(self._callbacks)

    def cleanup(self) -> None:
        for handle in self._recurring:
            handle.stop()
        self._recurring.clear()

        for task in list(self._tasks):
            if not task.done():
                task.cancel()
        self._tasks.clear()

        callbacks, self._callbacks = self._callbacks, []
        for fn in callbacks:
            try:
                fn()
            except Exception:  # noqa: BLE001
                logger.exception("CleanupManager callback failed")
