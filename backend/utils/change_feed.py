"""
Change feed for table-level insert/update notifications.

Stores publish a ChangeEvent after every committed write. Listeners open a
Subscription for one or more WatchSpecs and iterate it; leaving the
subscribe() context releases the subscription.
"""
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar
import asyncio
import logging

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_EVENTS = ("INSERT", "UPDATE")


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    event_type: str
    record: Dict[str, Any]
    old_record: Optional[Dict[str, Any]] = None
    received_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class WatchSpec:
    """A table to watch, the event types of interest and optional equality filters"""
    table: str
    events: Tuple[str, ...] = DEFAULT_EVENTS
    filters: Optional[Dict[str, Any]] = field(default=None, hash=False)

    def matches(self, event: ChangeEvent) -> bool:
        if event.table != self.table or event.event_type not in self.events:
            return False
        for column, value in (self.filters or {}).items():
            if str(event.record.get(column)) != str(value):
                return False
        return True


class Subscription:
    """Async iterator over matching change events. Never ends on its own."""

    def __init__(self, specs: Sequence[WatchSpec]):
        self.specs = tuple(specs)
        self.closed = False
        self._queue: asyncio.Queue = asyncio.Queue()

    def matches(self, event: ChangeEvent) -> bool:
        return any(spec.matches(event) for spec in self.specs)

    def push(self, event: ChangeEvent):
        if not self.closed:
            self._queue.put_nowait(event)

    def pending(self) -> int:
        return self._queue.qsize()

    def drain(self) -> int:
        """Drop queued events and return how many were dropped"""
        dropped = 0
        while True:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                return dropped
            dropped += 1

    def __aiter__(self):
        return self

    async def __anext__(self) -> ChangeEvent:
        return await self._queue.get()


class ChangeFeed:
    """In-process feed fed by the SQL and in-memory stores"""

    def __init__(self):
        self._subscriptions: List[Subscription] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def publish(self, event: ChangeEvent):
        for subscription in list(self._subscriptions):
            if subscription.matches(event):
                subscription.push(event)

    @asynccontextmanager
    async def subscribe(self, *specs: WatchSpec) -> AsyncIterator[Subscription]:
        if not specs:
            raise ValueError("At least one WatchSpec is required")

        subscription = Subscription(specs)
        self._subscriptions.append(subscription)
        logger.info(f"Subscribed to {[spec.table for spec in specs]} ({self.subscriber_count} active)")
        try:
            yield subscription
        finally:
            subscription.closed = True
            self._subscriptions.remove(subscription)
            logger.info(f"Released subscription to {[spec.table for spec in specs]} ({self.subscriber_count} active)")


async def watch(subscription: Subscription, refresh: Callable[[], Awaitable[T]]) -> AsyncIterator[T]:
    """
    Yield refresh() once, then again after every change event.
    Events that pile up while a refresh is running collapse into one re-fetch.
    """
    yield await refresh()
    async for event in subscription:
        dropped = subscription.drain()
        logger.debug(f"Refreshing after {event.event_type} on {event.table} (+{dropped} coalesced)")
        yield await refresh()
