# app/services/record_store.py
"""
Shared plumbing for the Supabase-backed repositories.

Design goals:
- Every blocking supabase-py call runs via asyncio.to_thread so the event loop is
  never blocked.
- Parsing of SDK responses (object with .data OR dict with "data").
- One in-memory cache per owner id. Read paths never raise: a failed fetch empties
  the cache and records a message in `error(owner_id)`. Write paths record the
  message and re-raise RecordStoreError so composite flows can abort.
- The owner id is always passed in by the caller; nothing reads an ambient user.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Generic, List, Optional, Set, TypeVar

from app.config import supabase as supabase_config
from app.services.errors import NO_OWNER_MESSAGE, RecordStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


# -----------------------
# Utility helpers
# -----------------------
def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_supabase_response(resp: Any) -> Dict[str, Any]:
    """
    Turn Supabase SDK responses (object with .data or dict) into a predictable dict.
    Returns {data, error, status_code}
    """
    if resp is None:
        return {"data": None, "error": "empty_response", "status_code": None}

    if hasattr(resp, "data"):
        return {
            "data": getattr(resp, "data"),
            "error": getattr(resp, "error", None),
            "status_code": getattr(resp, "status_code", None),
        }

    if isinstance(resp, dict):
        return {
            "data": resp.get("data", resp.get("result", resp.get("records"))),
            "error": resp.get("error"),
            "status_code": resp.get(
                "status_code", resp.get("statusCode", resp.get("status"))
            ),
        }

    return {"data": None, "error": f"unexpected_response:{type(resp).__name__}", "status_code": None}


def _error_message(exc: BaseException) -> str:
    # postgrest APIError carries .message; plain exceptions fall back to str()
    message = getattr(exc, "message", None)
    if isinstance(message, str) and message:
        return message
    return str(exc) or exc.__class__.__name__


def read_error_message(table: str, exc: BaseException) -> str:
    """Message for a failed read: store errors as-is, unmappable rows named as such."""
    if isinstance(exc, RecordStoreError):
        return exc.message
    if isinstance(exc, KeyError):
        return f"Malformed {table} row: missing {exc.args[0] if exc.args else 'column'}"
    return str(exc)


async def _run_blocking(fn: Callable, *args, **kwargs) -> Any:
    return await asyncio.to_thread(lambda: fn(*args, **kwargs))


# -----------------------
# Base repository
# -----------------------
class CachedRepository(Generic[T]):
    """
    Owner-scoped cache over one Supabase table.

    Subclasses set `table` and implement `_fetch(owner_id)`.
    """

    table: str = ""

    def __init__(self, client: Any = None, change_feed: Any = None) -> None:
        self._client = client
        self._change_feed = change_feed
        self._cache: Dict[str, List[T]] = {}
        self._errors: Dict[str, Optional[str]] = {}
        self._loading: Set[str] = set()
        self._subscriptions: Dict[str, Any] = {}

    @property
    def client(self) -> Any:
        if self._client is not None:
            return self._client
        return getattr(supabase_config.supabase_client, "client", None)

    # -----------------------
    # Store access
    # -----------------------
    async def _execute(
        self,
        operation: str,
        build: Callable[[Any], Any],
        table: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Run `build(client.table(...)).execute()` off the event loop.

        Returns the row list; raises RecordStoreError on any failure.
        """
        table = table or self.table
        client = self.client
        if client is None:
            raise RecordStoreError(
                "Supabase client is not configured.", table=table, operation=operation
            )

        logger.debug("DB call: %s on %s", operation, table)
        try:
            raw = await _run_blocking(lambda: build(client.table(table)).execute())
        except Exception as exc:
            logger.exception("DB call %s on %s raised: %s", operation, table, exc)
            raise RecordStoreError(
                _error_message(exc), table=table, operation=operation
            ) from exc

        parsed = parse_supabase_response(raw)
        if parsed["error"]:
            message = _error_message(parsed["error"]) if isinstance(
                parsed["error"], BaseException
            ) else str(parsed["error"])
            logger.warning("DB call %s on %s returned error: %s", operation, table, message)
            raise RecordStoreError(message, table=table, operation=operation)

        data = parsed["data"]
        if data is None:
            return []
        return data if isinstance(data, list) else [data]

    async def _write(
        self,
        owner_id: Optional[str],
        operation: str,
        build: Callable[[Any], Any],
        table: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Single owner-scoped write: records the error state and re-raises."""
        if not owner_id:
            raise RecordStoreError(NO_OWNER_MESSAGE, table=table or self.table, operation=operation)
        try:
            rows = await self._execute(operation, build, table=table)
        except RecordStoreError as exc:
            self._errors[owner_id] = exc.message
            raise
        self._errors[owner_id] = None
        return rows

    # -----------------------
    # Cache
    # -----------------------
    async def _fetch(self, owner_id: str) -> List[T]:
        raise NotImplementedError

    async def refresh(self, owner_id: Optional[str]) -> List[T]:
        """Re-fetch everything for the owner and replace the cache wholesale."""
        if not owner_id:
            return []

        self._loading.add(owner_id)
        self._errors[owner_id] = None
        try:
            items = await self._fetch(owner_id)
        except (RecordStoreError, ValueError, KeyError) as exc:
            message = read_error_message(self.table, exc)
            logger.warning("Refresh of %s failed for owner=%s: %s", self.table, owner_id, message)
            self._errors[owner_id] = message
            self._cache[owner_id] = []
        else:
            self._cache[owner_id] = items
        finally:
            self._loading.discard(owner_id)
        return self.snapshot(owner_id)

    async def list(self, owner_id: Optional[str]) -> List[T]:
        """Cached rows for the owner; fetched again when never loaded or the last call failed."""
        if not owner_id:
            return []
        if owner_id not in self._cache or self._errors.get(owner_id):
            await self.refresh(owner_id)
        return self.snapshot(owner_id)

    def snapshot(self, owner_id: Optional[str]) -> List[T]:
        return list(self._cache.get(owner_id or "", []))

    def error(self, owner_id: Optional[str]) -> Optional[str]:
        return self._errors.get(owner_id or "")

    def is_loading(self, owner_id: Optional[str]) -> bool:
        return (owner_id or "") in self._loading

    def invalidate(self, owner_id: str) -> None:
        self._cache.pop(owner_id, None)

    # -----------------------
    # Change notification
    # -----------------------
    async def subscribe(self, owner_id: Optional[str]) -> None:
        """Refresh the owner's cache on any insert/update/delete of this table."""
        if not owner_id or self._change_feed is None or owner_id in self._subscriptions:
            return

        async def _on_change() -> None:
            logger.debug("Change notification on %s for owner=%s", self.table, owner_id)
            await self.refresh(owner_id)

        try:
            handle = await self._change_feed.watch(self.table, owner_id, _on_change)
        except Exception as exc:
            logger.exception(
                "Could not subscribe to %s changes for owner=%s: %s", self.table, owner_id, exc
            )
            return
        self._subscriptions[owner_id] = handle

    async def unsubscribe(self, owner_id: Optional[str]) -> None:
        if not owner_id or owner_id not in self._subscriptions:
            return
        handle = self._subscriptions.pop(owner_id)
        if handle is not None and self._change_feed is not None:
            await self._change_feed.unwatch(handle)

    def is_subscribed(self, owner_id: Optional[str]) -> bool:
        return (owner_id or "") in self._subscriptions
