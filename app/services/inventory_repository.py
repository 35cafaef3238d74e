# app/services/inventory_repository.py
"""
Inventory repository: owner-scoped cache of `inventory_items`, newest first.

Reads never raise (see CachedRepository.refresh). Writes are scoped by both row id
and owner id and propagate RecordStoreError; the caller decides whether to refresh.
"""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from app.models.domain import InventoryItem, ItemSource, NewInventoryItem
from app.services.record_store import CachedRepository, now_iso

logger = logging.getLogger(__name__)


class InventoryRepository(CachedRepository[InventoryItem]):
    table = "inventory_items"

    async def _fetch(self, owner_id: str) -> List[InventoryItem]:
        rows = await self._execute(
            "list",
            lambda t: t.select("*").eq("user_id", owner_id).order("added_at", desc=True),
        )
        return [InventoryItem.from_row(r) for r in rows]

    def find(self, owner_id: str, item_id: str) -> Optional[InventoryItem]:
        """Look an item up in the current snapshot (no network)."""
        for item in self.snapshot(owner_id):
            if item.id == item_id:
                return item
        return None

    # -----------------------
    # Writes
    # -----------------------
    async def add_items(
        self,
        owner_id: str,
        items: Iterable[NewInventoryItem],
        source: ItemSource = ItemSource.MANUAL,
    ) -> List[InventoryItem]:
        """Insert a batch (scan, receipt, barcode, manual entry) then refresh."""
        added_at = now_iso()
        rows = [
            {
                "user_id": owner_id,
                "name": item.name,
                "quantity": item.quantity,
                "unit": item.unit,
                "category": item.category,
                "expiry_date": item.expiry_date.isoformat() if item.expiry_date else None,
                "price_info": item.price_info,
                "added_at": added_at,
                "source": ItemSource(source).value,
            }
            for item in items
        ]
        if not rows:
            return self.snapshot(owner_id)

        logger.info("Adding %d inventory item(s) for owner=%s source=%s", len(rows), owner_id, source)
        await self._write(owner_id, "insert", lambda t: t.insert(rows))
        return await self.refresh(owner_id)

    async def save_leftover(self, owner_id: str, item: NewInventoryItem) -> List[InventoryItem]:
        """Store what is left of a cooked dish as a new inventory row."""
        return await self.add_items(owner_id, [item], source=ItemSource.COOKED_REMAINDER)

    async def remove_item(self, owner_id: str, item_id: str) -> None:
        logger.info("Removing inventory item id=%s owner=%s", item_id, owner_id)
        await self._write(
            owner_id,
            "delete",
            lambda t: t.delete().eq("id", item_id).eq("user_id", owner_id),
        )

    async def update_quantity(self, owner_id: str, item_id: str, quantity: float) -> None:
        logger.info(
            "Updating inventory item id=%s owner=%s quantity=%s", item_id, owner_id, quantity
        )
        await self._write(
            owner_id,
            "update",
            lambda t: t.update({"quantity": quantity, "updated_at": now_iso()})
            .eq("id", item_id)
            .eq("user_id", owner_id),
        )
