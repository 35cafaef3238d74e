# app/services/realtime.py
"""
Supabase realtime change feed.

One channel per (table, owner). Every postgres change on the table filtered by
`user_id=eq.<owner>` schedules the repository's refresh coroutine on the running
loop. No payload is applied directly; the callback always refetches.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Set

from supabase import AsyncClient, acreate_client

from app.config.settings import settings
from app.config.supabase import is_valid_supabase_url

logger = logging.getLogger(__name__)

OnChange = Callable[[], Awaitable[None]]


class NullChangeFeed:
    """Used when realtime is disabled or Supabase is not configured."""

    async def watch(self, table: str, owner_id: str, on_change: OnChange) -> None:
        logger.debug("Realtime disabled; not watching %s for owner=%s", table, owner_id)
        return None

    async def unwatch(self, handle: Any) -> None:
        return None

    async def close(self) -> None:
        return None


class RealtimeChangeFeed:

    def __init__(self, url: Optional[str] = None, key: Optional[str] = None) -> None:
        self._url = url or settings.supabase_url
        self._key = key or settings.supabase_service_role_key
        self._client: Optional[AsyncClient] = None
        self._lock = asyncio.Lock()
        # keep references so scheduled refreshes are not garbage collected
        self._tasks: Set[asyncio.Task] = set()

    async def _get_client(self) -> AsyncClient:
        async with self._lock:
            if self._client is None:
                self._client = await acreate_client(self._url, self._key)
                logger.info("Realtime client connected")
            return self._client

    def _schedule(self, on_change: OnChange) -> None:
        task = asyncio.ensure_future(on_change())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def watch(self, table: str, owner_id: str, on_change: OnChange) -> Any:
        client = await self._get_client()
        channel = client.channel(f"{table}_changes_{owner_id}")

        def _callback(payload: Any) -> None:
            logger.debug("Realtime event on %s for owner=%s", table, owner_id)
            self._schedule(on_change)

        channel.on_postgres_changes(
            "*",
            schema="public",
            table=table,
            filter=f"user_id=eq.{owner_id}",
            callback=_callback,
        )
        await channel.subscribe()
        logger.info("Watching %s for owner=%s", table, owner_id)
        return channel

    async def unwatch(self, handle: Any) -> None:
        if self._client is None or handle is None:
            return
        await self._client.remove_channel(handle)

    async def close(self) -> None:
        if self._client is None:
            return
        try:
            await self._client.remove_all_channels()
        except Exception:
            logger.exception("Error while closing realtime channels")
        self._client = None


def build_change_feed() -> Any:
    """Pick the realtime feed when configured, the no-op feed otherwise."""
    if not settings.realtime_enabled:
        logger.info("Realtime change feed disabled by configuration")
        return NullChangeFeed()
    if not is_valid_supabase_url(settings.supabase_url) or not settings.supabase_service_role_key:
        logger.info("Realtime change feed unavailable: Supabase not configured")
        return NullChangeFeed()
    return RealtimeChangeFeed()
