# app/services/cooking_session_repository.py
"""
Cooking session repository.

Sessions are append-only receipts read on demand, so there is no realtime
subscription. Items are a secondary read per session (N+1); a failed item read
yields a session with no items rather than failing the whole list.
`create_session` and `add_session_item` are independent writes with no
transactional link; callers sequence them.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from app.models.domain import CookingSession, CookingSessionItem
from app.services.errors import RecordStoreError
from app.services.record_store import CachedRepository, read_error_message

logger = logging.getLogger(__name__)

ITEMS_TABLE = "cooking_session_items"


class CookingSessionRepository(CachedRepository[CookingSession]):
    table = "cooking_sessions"

    async def _fetch_items(self, session_id: str) -> List[CookingSessionItem]:
        rows = await self._execute(
            "list_items",
            lambda t: t.select("*").eq("session_id", session_id),
            table=ITEMS_TABLE,
        )
        return [CookingSessionItem.from_row(r) for r in rows]

    async def _fetch(self, owner_id: str) -> List[CookingSession]:
        rows = await self._execute(
            "list",
            lambda t: t.select("*").eq("user_id", owner_id).order("created_at", desc=True),
        )
        sessions: List[CookingSession] = []
        for row in rows:
            try:
                items = await self._fetch_items(str(row["id"]))
            except RecordStoreError as exc:
                logger.warning("Items of cooking session %s unavailable: %s", row.get("id"), exc.message)
                items = []
            sessions.append(CookingSession.from_row(row, items))
        return sessions

    async def get_session(self, owner_id: str, session_id: str) -> Optional[CookingSession]:
        """One session with its items, or None when missing or unreadable."""
        if not owner_id:
            return None
        try:
            rows = await self._execute(
                "get",
                lambda t: t.select("*").eq("id", session_id).eq("user_id", owner_id).limit(1),
            )
            if not rows:
                return None
            items = await self._fetch_items(session_id)
            return CookingSession.from_row(rows[0], items)
        except (RecordStoreError, ValueError, KeyError) as exc:
            self._errors[owner_id] = read_error_message(self.table, exc)
            return None

    async def create_session(
        self,
        owner_id: str,
        dish_name: str,
        total_cost: float,
        notes: Optional[str] = None,
    ) -> str:
        """Insert the session row only and return its generated id."""
        row = {
            "user_id": owner_id,
            "dish_name": dish_name,
            "total_cost": total_cost,
            "notes": notes,
        }
        rows = await self._write(owner_id, "insert", lambda t: t.insert(row))
        if not rows or rows[0].get("id") is None:
            exc = RecordStoreError(
                "Cooking session was not returned by the store.",
                table=self.table,
                operation="insert",
            )
            self._errors[owner_id] = exc.message
            raise exc

        session_id = str(rows[0]["id"])
        logger.info(
            "Created cooking session id=%s dish=%r total_cost=%.2f owner=%s",
            session_id,
            dish_name,
            total_cost,
            owner_id,
        )
        self.invalidate(owner_id)
        return session_id

    async def add_session_item(self, owner_id: str, item: CookingSessionItem) -> None:
        if not item.session_id:
            raise RecordStoreError(
                "Session item has no session id.", table=ITEMS_TABLE, operation="insert"
            )
        row = item.to_row()
        await self._write(owner_id, "insert", lambda t: t.insert(row), table=ITEMS_TABLE)
        self.invalidate(owner_id)
