# src/tasksync/core/subscription.py

"""
Push-based subscription objects.

A Subscription is the consumer end of a live stream (identity changes, task
snapshots). Producers call `push()` / `fail()` from any thread; values are
marshalled onto the event loop the subscription was created on. The consumer
iterates with `async for` and calls `close()` (or leaves `async with`) to
unregister from the producer. A closed subscription never restarts.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_VALUE = "value"
_ERROR = "error"
_END = "end"


class Subscription(Generic[T]):
    def __init__(
        self,
        *,
        name: str = "subscription",
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self.name = name
        self._loop = loop or asyncio.get_running_loop()
        self._queue: asyncio.Queue[tuple[str, Any]] = asyncio.Queue()
        self._unregister: Callable[[], None] | None = None
        self._closed = False
        self._finished = False

    @property
    def closed(self) -> bool:
        return self._closed

    def bind(self, unregister: Callable[[], None]) -> None:
        """Attach the producer-side teardown hook (called once, on close)."""
        if self._closed:
            unregister()
            return
        self._unregister = unregister

    # ---- producer side ----

    def push(self, value: T) -> None:
        self._enqueue(_VALUE, value)

    def fail(self, exc: BaseException) -> None:
        """Deliver `exc` to the consumer; the stream ends after it."""
        self._enqueue(_ERROR, exc)

    def _enqueue(self, kind: str, payload: Any) -> None:
        if self._closed or self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self._queue.put_nowait, (kind, payload))

    # ---- consumer side ----

    def close(self) -> None:
        if self._closed:
            return
        # Sentinel goes through the same path so already-pushed values keep their order.
        self._enqueue(_END, None)
        self._closed = True

        unregister, self._unregister = self._unregister, None
        if unregister is not None:
            try:
                unregister()
            except Exception:
                logger.exception("Failed to unregister %s", self.name)
        logger.debug("%s closed", self.name)

    def __aiter__(self) -> "Subscription[T]":
        return self

    async def __anext__(self) -> T:
        if self._finished:
            raise StopAsyncIteration

        kind, payload = await self._queue.get()
        if kind == _VALUE:
            return payload

        self._finished = True
        if kind == _ERROR:
            self.close()
            raise payload
        raise StopAsyncIteration

    async def __aenter__(self) -> "Subscription[T]":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()
