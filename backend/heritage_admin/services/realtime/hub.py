"""In-process fan-out of row-change events to subscribers.

Every subscription owns a bounded buffer. When a burst arrives faster than
the subscriber drains it, the oldest buffered events are dropped and counted.
Gaps are never detected or replayed; consumers recover by refetching.
"""

import asyncio
import inspect
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Iterable

from heritage_admin.utils.dates import utcnow

logger = logging.getLogger(__name__)

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"
ALL_EVENTS = frozenset({INSERT, UPDATE, DELETE})


@dataclass
class ChangeEvent:
    table: str
    event_type: str  # INSERT | UPDATE | DELETE
    new: dict[str, Any] = field(default_factory=dict)
    old: dict[str, Any] = field(default_factory=dict)
    committed_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "table": self.table,
            "event": self.event_type,
            "new": self.new,
            "old": self.old,
            "committed_at": self.committed_at.isoformat(),
        }


EventCallback = Callable[[ChangeEvent], Awaitable[None] | None]


class Subscription:
    """One consumer's view of a table's change stream."""

    def __init__(
        self,
        hub: "RealtimeHub",
        table: str,
        event_types: Iterable[str],
        filters: dict[str, Any] | None,
        maxsize: int,
    ) -> None:
        self._hub = hub
        self.table = table
        self.event_types = frozenset(e.upper() for e in event_types)
        self.filters = dict(filters or {})
        self.maxsize = max(1, maxsize)
        self.dropped = 0
        self.closed = False
        self._buffer: deque[ChangeEvent] = deque()
        self._wakeup = asyncio.Event()
        self._task: asyncio.Task | None = None

    def matches(self, event: ChangeEvent) -> bool:
        if event.table != self.table or event.event_type not in self.event_types:
            return False
        row = event.new or event.old
        return all(str(row.get(column)) == str(value) for column, value in self.filters.items())

    def _push(self, event: ChangeEvent) -> None:
        if self.closed:
            return
        if len(self._buffer) >= self.maxsize:
            self._buffer.popleft()
            self.dropped += 1
            logger.warning(
                f"Realtime buffer full for {self.table} {self.filters}, dropped oldest event "
                f"({self.dropped} dropped so far)"
            )
        self._buffer.append(event)
        self._wakeup.set()

    @property
    def pending(self) -> int:
        return len(self._buffer)

    async def get(self) -> ChangeEvent | None:
        """Next buffered event, or None once the subscription is closed."""
        while not self._buffer:
            if self.closed:
                return None
            self._wakeup.clear()
            await self._wakeup.wait()
        return self._buffer.popleft()

    def __aiter__(self):
        return self

    async def __anext__(self) -> ChangeEvent:
        event = await self.get()
        if event is None:
            raise StopAsyncIteration
        return event

    def listen(self, callback: EventCallback) -> asyncio.Task:
        """Invoke `callback` once per event, one at a time, until closed."""

        async def pump() -> None:
            async for event in self:
                try:
                    result = callback(event)
                    if inspect.isawaitable(result):
                        await result
                except Exception:
                    logger.exception(f"Realtime callback failed for {self.table} event")

        self._task = asyncio.create_task(pump())
        return self._task

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._hub._remove(self)
        self._buffer.clear()
        self._wakeup.set()
        if self._task is not None and self._task is not asyncio.current_task():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass


class RealtimeHub:

    def __init__(self, buffer_size: int = 256) -> None:
        self.buffer_size = buffer_size
        self._subscriptions: list[Subscription] = []

    def subscribe(
        self,
        table: str,
        event_types: Iterable[str] = ALL_EVENTS,
        filters: dict[str, Any] | None = None,
        maxsize: int | None = None,
    ) -> Subscription:
        sub = Subscription(self, table, event_types, filters, maxsize or self.buffer_size)
        self._subscriptions.append(sub)
        logger.debug(f"Subscribed to {table} {sorted(sub.event_types)} {sub.filters}")
        return sub

    def publish(self, event: ChangeEvent) -> int:
        """Deliver to every matching subscription. Returns the number reached."""
        reached = 0
        for sub in list(self._subscriptions):
            if sub.matches(event):
                sub._push(event)
                reached += 1
        return reached

    def _remove(self, sub: Subscription) -> None:
        try:
            self._subscriptions.remove(sub)
        except ValueError:
            pass

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)
