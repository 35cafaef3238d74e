"""
Inventory endpoints: list, add, save leftovers, remove.
"""
from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from app.api.deps import OwnerScope, get_scope
from app.models.domain import ItemSource, NewInventoryItem

logger = logging.getLogger(__name__)
router = APIRouter()


class AddItemsRequest(BaseModel):
    items: List[NewInventoryItem] = Field(min_length=1)
    source: ItemSource = ItemSource.MANUAL


def _listing(scope: OwnerScope, items) -> dict:
    error = scope.services.inventory.error(scope.owner_id)
    return {"ok": error is None, "items": items, "error": error}


@router.get("")
async def list_inventory(scope: OwnerScope = Depends(get_scope)):
    items = await scope.services.inventory.list(scope.owner_id)
    return _listing(scope, items)


@router.post("", status_code=201)
async def add_items(body: AddItemsRequest, scope: OwnerScope = Depends(get_scope)):
    items = await scope.services.inventory.add_items(scope.owner_id, body.items, body.source)
    return _listing(scope, items)


@router.post("/leftovers", status_code=201)
async def save_leftover(body: NewInventoryItem, scope: OwnerScope = Depends(get_scope)):
    items = await scope.services.inventory.save_leftover(scope.owner_id, body)
    return _listing(scope, items)


@router.delete("/{item_id}")
async def remove_item(item_id: str, scope: OwnerScope = Depends(get_scope)):
    inventory = scope.services.inventory
    await inventory.remove_item(scope.owner_id, item_id)
    items = await inventory.refresh(scope.owner_id)
    return _listing(scope, items)
