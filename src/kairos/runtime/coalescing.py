"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Shared-future request coalescing for duplicate in-flight work.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

T = TypeVar("T")

logger = logging.getLogger("kairos.runtime.coalescing")

ResultCallback = Callable[[T], None]
ErrorCallback = Callable[[BaseException], None]


def _consume_exception(future: asyncio.Future[object]) -> None:
    # Marks the exception retrieved even when no joiner is left to await it.
    if not future.cancelled():
        future.exception()


class RequestCoalescer(Generic[T]):
    """
    Deduplicate identical in-flight requests.

    Every key maps to one shared future that all callers await. The future is
    resolved exactly once by a driver task that runs the factory, and the key
    is released the moment the call settles. A joiner that gets cancelled
    stops waiting without cancelling the shared call.
    """

    def __init__(self) -> None:
        self._pending: dict[str, asyncio.Future[T]] = {}
        self._drivers: set[asyncio.Task[None]] = set()

    def __contains__(self, key: object) -> bool:
        return key in self._pending

    def __len__(self) -> int:
        return len(self._pending)

    def pending_keys(self) -> list[str]:
        return list(self._pending.keys())

    async def run(
        self,
        key: str,
        factory: Callable[[], Awaitable[T]],
        *,
        on_result: ResultCallback[T] | None = None,
        on_error: ErrorCallback | None = None,
    ) -> T:
        """
        Join the call in flight for ``key`` or start a new one.

        ``on_result``/``on_error`` run once per factory call, and ``on_result``
        only while the call is still registered under ``key`` (not detached).
        """
        future = self._pending.get(key)
        if future is None:
            future = self._start(key, factory, on_result=on_result, on_error=on_error)
        return await asyncio.shield(future)

    def detach(self, predicate: Callable[[str], bool]) -> int:
        """
        Forget pending calls whose key matches ``predicate``.

        Detached calls keep running and still resolve their joiners, but the
        next ``run`` for that key starts a fresh call.
        """
        keys = [key for key in self._pending if predicate(key)]
        for key in keys:
            self._pending.pop(key, None)
        return len(keys)

    def detach_all(self) -> int:
        return self.detach(lambda _key: True)

    def _start(
        self,
        key: str,
        factory: Callable[[], Awaitable[T]],
        *,
        on_result: ResultCallback[T] | None,
        on_error: ErrorCallback | None,
    ) -> asyncio.Future[T]:
        loop = asyncio.get_running_loop()
        future: asyncio.Future[T] = loop.create_future()
        future.add_done_callback(_consume_exception)
        self._pending[key] = future

        driver = loop.create_task(
            self._drive(key, future, factory, on_result=on_result, on_error=on_error)
        )
        self._drivers.add(driver)
        driver.add_done_callback(self._drivers.discard)
        return future

    def _release(self, key: str, future: asyncio.Future[T]) -> bool:
        """Drop ``key`` if it still points at ``future``; report whether it did."""
        if self._pending.get(key) is future:
            del self._pending[key]
            return True
        return False

    async def _drive(
        self,
        key: str,
        future: asyncio.Future[T],
        factory: Callable[[], Awaitable[T]],
        *,
        on_result: ResultCallback[T] | None,
        on_error: ErrorCallback | None,
    ) -> None:
        try:
            value = await factory()
        except asyncio.CancelledError:
            self._release(key, future)
            if not future.done():
                future.cancel()
            raise
        except Exception as exc:  # noqa: BLE001
            self._release(key, future)
            if on_error is not None:
                self._notify(on_error, exc, key=key)
            if not future.done():
                future.set_exception(exc)
            return

        attached = self._release(key, future)
        if attached and on_result is not None:
            self._notify(on_result, value, key=key)
        if not future.done():
            future.set_result(value)

    @staticmethod
    def _notify(callback: Callable[[object], None], arg: object, *, key: str) -> None:
        try:
            callback(arg)
        except Exception:  # noqa: BLE001
            logger.exception("RequestCoalescer callback failed for key %s", key)
