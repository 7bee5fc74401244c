"""
Change feed backed by Supabase Realtime postgres_changes channels.
Used together with the Supabase store, which does not publish events itself.
"""
from contextlib import asynccontextmanager
from functools import partial
from supabase import AsyncClient
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional
import logging
import uuid

from utils.change_feed import ChangeFeed, ChangeEvent, Subscription, WatchSpec

logger = logging.getLogger(__name__)


def server_filter(spec: WatchSpec) -> Optional[str]:
    """Realtime accepts a single `column=eq.value` filter; the rest is matched locally"""
    if not spec.filters:
        return None
    column, value = next(iter(spec.filters.items()))
    return f"{column}=eq.{value}"


def parse_payload(payload: Dict[str, Any]) -> Optional[ChangeEvent]:
    data = payload.get("data", payload)
    table = data.get("table")
    event_type = data.get("type") or data.get("eventType")
    if not table or not event_type:
        return None
    record = data.get("record") or data.get("new") or {}
    old_record = data.get("old_record") or data.get("old")
    return ChangeEvent(table, str(event_type).upper(), record, old_record)


class SupabaseRealtimeFeed(ChangeFeed):

    def __init__(self, client_factory: Callable[[], Awaitable[AsyncClient]]):
        super().__init__()
        self._client_factory = client_factory

    def _on_change(self, subscription: Subscription, payload: Dict[str, Any]):
        event = parse_payload(payload)
        if event is None:
            logger.warning(f"Ignoring unrecognised realtime payload: {payload}")
            return
        if subscription.matches(event):
            subscription.push(event)

    @asynccontextmanager
    async def subscribe(self, *specs: WatchSpec) -> AsyncIterator[Subscription]:
        if not specs:
            raise ValueError("At least one WatchSpec is required")

        client = await self._client_factory()
        subscription = Subscription(specs)
        channels = []
        try:
            for spec in specs:
                channel = client.channel(f"{spec.table}-{uuid.uuid4().hex[:12]}")
                for event_type in spec.events:
                    channel.on_postgres_changes(
                        event_type,
                        callback=partial(self._on_change, subscription),
                        table=spec.table,
                        schema="public",
                        filter=server_filter(spec)
                    )
                await channel.subscribe()
                channels.append(channel)
            logger.info(f"Realtime channels open for {[spec.table for spec in specs]}")
            yield subscription
        finally:
            subscription.closed = True
            for channel in channels:
                await client.remove_channel(channel)
            logger.info(f"Realtime channels closed for {[spec.table for spec in specs]}")
