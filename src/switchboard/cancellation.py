"""Cooperative cancellation for in-flight provider dispatches."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Awaitable, Callable
from typing import TypeVar

from switchboard.errors import RequestCancelledError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancellationToken:
    """Per-dispatch flag handed to adapters."""

    def __init__(self) -> None:
        self._cancelled = False
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        for callback in self._callbacks:
            try:
                callback()
            except Exception:
                logger.exception("Cancellation callback failed")

    def add_callback(self, callback: Callable[[], None]) -> None:
        if self._cancelled:
            callback()
        else:
            self._callbacks.append(callback)

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise RequestCancelledError()


class CancellationScope:
    """Groups dispatches so they can be cancelled together.

    ``cancel_all`` may be called from any thread or event loop; each tracked
    task is cancelled on the loop that owns it. Awaiters of a cancelled
    dispatch receive ``RequestCancelledError``.
    """

    def __init__(self, name: str = "default") -> None:
        self.name = name
        self._lock = threading.Lock()
        self._inflight: dict[asyncio.Task, tuple[CancellationToken, asyncio.AbstractEventLoop]] = {}

    @property
    def in_flight(self) -> int:
        with self._lock:
            return len(self._inflight)

    async def run(self, call: Callable[[CancellationToken], Awaitable[T]]) -> T:
        token = CancellationToken()
        loop = asyncio.get_running_loop()
        task = loop.create_task(call(token))
        with self._lock:
            self._inflight[task] = (token, loop)
        try:
            return await task
        except asyncio.CancelledError:
            if token.cancelled:
                raise RequestCancelledError() from None
            raise
        finally:
            with self._lock:
                self._inflight.pop(task, None)

    def cancel_all(self) -> int:
        """Cancel every in-flight dispatch; returns how many were signalled."""
        with self._lock:
            entries = list(self._inflight.items())

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        for task, (token, loop) in entries:
            token.cancel()
            if task.done() or loop.is_closed():
                continue
            if loop is running:
                task.cancel()
            else:
                loop.call_soon_threadsafe(task.cancel)

        if entries:
            logger.info(f"Cancelled {len(entries)} in-flight request(s) in scope {self.name!r}")
        return len(entries)
