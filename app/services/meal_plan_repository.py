# app/services/meal_plan_repository.py
"""
Meal plan repository: owner-scoped cache of `meal_plan` for one date window.

The window defaults to the current Monday..Sunday week and is remembered per owner;
listing a different window refetches. Rows come back in date order. Writes are
scoped by id and owner, re-raise RecordStoreError and refresh on success.
"""
from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Dict, List, Optional, Tuple

from app.models.domain import MealPlanEntry, MealPlanUpdate, NewMealPlanEntry
from app.services.errors import ValidationError
from app.services.record_store import CachedRepository, read_error_message

logger = logging.getLogger(__name__)


def week_bounds(today: date) -> Tuple[date, date]:
    """Monday and Sunday of the week containing `today`."""
    start = today - timedelta(days=today.weekday())
    return start, start + timedelta(days=6)


class MealPlanRepository(CachedRepository[MealPlanEntry]):
    table = "meal_plan"

    def __init__(self, client=None, change_feed=None, today=date.today) -> None:
        super().__init__(client, change_feed)
        self._today = today
        self._ranges: Dict[str, Tuple[date, date]] = {}

    def window(self, owner_id: str) -> Tuple[date, date]:
        return self._ranges.get(owner_id) or week_bounds(self._today())

    async def _fetch(self, owner_id: str) -> List[MealPlanEntry]:
        start, end = self.window(owner_id)
        rows = await self._execute(
            "list",
            lambda t: t.select("*")
            .eq("user_id", owner_id)
            .gte("date", start.isoformat())
            .lte("date", end.isoformat())
            .order("date"),
        )
        return [MealPlanEntry.from_row(r) for r in rows]

    async def list(
        self,
        owner_id: Optional[str],
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[MealPlanEntry]:
        """Meals in [start, end]; either bound missing falls back to the current window."""
        if not owner_id:
            return []
        current = self.window(owner_id)
        wanted = (start or current[0], end or current[1])
        if wanted[1] < wanted[0]:
            raise ValidationError("End date must not be before start date.")
        if wanted != self._ranges.get(owner_id):
            self._ranges[owner_id] = wanted
            self.invalidate(owner_id)
        return await super().list(owner_id)

    async def find(self, owner_id: str, meal_id: str) -> Optional[MealPlanEntry]:
        """One meal by id regardless of the cached window; None when absent or unreadable."""
        rows = await self._execute(
            "find",
            lambda t: t.select("*").eq("id", meal_id).eq("user_id", owner_id).limit(1),
        )
        if not rows:
            return None
        try:
            return MealPlanEntry.from_row(rows[0])
        except (ValueError, KeyError) as exc:
            self._errors[owner_id] = read_error_message(self.table, exc)
            return None

    # -----------------------
    # Writes
    # -----------------------
    async def add(self, owner_id: str, entry: NewMealPlanEntry) -> List[MealPlanEntry]:
        row = entry.to_row(owner_id)
        logger.info(
            "Planning %s on %s for %r owner=%s",
            entry.meal_type.value,
            entry.date,
            entry.person,
            owner_id,
        )
        await self._write(owner_id, "insert", lambda t: t.insert(row))
        return await self.refresh(owner_id)

    async def update(self, owner_id: str, meal_id: str, changes: MealPlanUpdate) -> List[MealPlanEntry]:
        payload = changes.to_row()
        if not payload:
            logger.debug("Nothing to update for meal id=%s", meal_id)
            return self.snapshot(owner_id)
        logger.info("Updating meal id=%s fields=%s owner=%s", meal_id, sorted(payload), owner_id)
        await self._write(
            owner_id,
            "update",
            lambda t: t.update(payload).eq("id", meal_id).eq("user_id", owner_id),
        )
        return await self.refresh(owner_id)

    async def delete(self, owner_id: str, meal_id: str) -> List[MealPlanEntry]:
        logger.info("Deleting meal id=%s owner=%s", meal_id, owner_id)
        await self._write(
            owner_id,
            "delete",
            lambda t: t.delete().eq("id", meal_id).eq("user_id", owner_id),
        )
        return await self.refresh(owner_id)
