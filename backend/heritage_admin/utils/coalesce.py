"""Per-key request coalescing.

At most one request per key runs at a time. A request that arrives while one
is running waits as the key's single pending request; a newer arrival replaces
it and the replaced caller gets RequestSuperseded. Running requests are never
cancelled.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Hashable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RequestSuperseded(Exception):
    def __init__(self, key: Hashable) -> None:
        super().__init__(f"Request for {key!r} was superseded by a newer one")
        self.key = key


def _transfer(task: asyncio.Future, waiter: asyncio.Future) -> None:
    if waiter.done():
        return
    if task.cancelled():
        waiter.cancel()
    elif task.exception() is not None:
        waiter.set_exception(task.exception())
    else:
        waiter.set_result(task.result())


class KeyedCoalescer:

    def __init__(self) -> None:
        self._running: dict[Hashable, asyncio.Future] = {}
        self._pending: dict[Hashable, tuple[Callable[[], Awaitable[Any]], asyncio.Future]] = {}

    def is_running(self, key: Hashable) -> bool:
        return key in self._running

    def has_pending(self, key: Hashable) -> bool:
        return key in self._pending

    async def run(self, key: Hashable, factory: Callable[[], Awaitable[T]]) -> T:
        """Run `factory()` for `key`, or queue it behind the running request."""
        if key not in self._running:
            task = self._launch(key, factory)
            return await asyncio.shield(task)

        waiter = asyncio.get_running_loop().create_future()
        replaced = self._pending.get(key)
        self._pending[key] = (factory, waiter)
        if replaced is not None and not replaced[1].done():
            logger.debug(f"Superseded pending request for {key!r}")
            replaced[1].set_exception(RequestSuperseded(key))
        return await waiter

    def _launch(self, key: Hashable, factory: Callable[[], Awaitable[Any]]) -> asyncio.Future:
        task = asyncio.ensure_future(factory())
        self._running[key] = task
        task.add_done_callback(lambda _: self._finished(key))
        return task

    def _finished(self, key: Hashable) -> None:
        self._running.pop(key, None)
        queued = self._pending.pop(key, None)
        if queued is None:
            return
        factory, waiter = queued
        if waiter.done():
            return
        task = self._launch(key, factory)
        task.add_done_callback(lambda t: _transfer(t, waiter))
