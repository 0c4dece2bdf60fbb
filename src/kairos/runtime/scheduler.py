"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Recurring background task handle used by sweeps and samplers.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger("kairos.runtime.scheduler")

# Callback signature: sync or async, no arguments.
TickCallback = Callable[[], Awaitable[None] | None]


class RecurringTask:
    """
    Cancellable handle that runs one callback every ``interval_s`` seconds.

    The callback is awaited to completion before the next sleep starts, so
    firings of one handle never overlap. Callback errors are logged and the
    loop keeps going.
    """

    def __init__(self, callback: TickCallback, interval_s: float, *, name: str) -> None:
        if interval_s <= 0:
            raise ValueError("interval_s must be > 0")
        self._callback = callback
        self._interval_s = interval_s
        self._name = name
        self._task: asyncio.Task[None] | None = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def interval_s(self) -> float:
        return self._interval_s

    @property
    def is_running(self) -> bool:
        """Whether the background loop is scheduled and not finished."""
        return self._task is not None and not self._task.done()

    def start(self) -> bool:
        """
        Schedule the loop on the running event loop.

        Returns ``False`` when no loop is running; the handle stays idle and
        ``start()`` may be called again later. Starting a running handle is a
        no-op that returns ``True``.
        """
        if self.is_running:
            return True
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return False
        self._task = loop.create_task(self._loop(), name=self._name)
        logger.debug("RecurringTask %s started (interval=%.2fs)", self._name, self._interval_s)
        return True

    def stop(self) -> None:
        """Cancel the loop. Safe to call repeatedly or on an idle handle."""
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()
            logger.debug("RecurringTask %s stopped", self._name)

    async def wait_closed(self) -> None:
        """Stop the loop and wait until the underlying task has finished."""
        task = self._task
        self.stop()
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval_s)
            try:
                result = self._callback()
                if inspect.isawaitable(result):
                    await result
            except asyncio.CancelledError:
                raise
            except Exception:  # noqa: BLE001
                logger.exception("RecurringTask %s tick failed", self._name)
