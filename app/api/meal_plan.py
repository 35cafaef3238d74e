"""
Meal plan endpoints: week listing, add/edit/remove a planned meal and saving what
is left of it to the inventory.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from app.api.deps import OwnerScope, get_scope
from app.models.domain import Category, MealPlanUpdate, NewInventoryItem, NewMealPlanEntry, Unit

logger = logging.getLogger(__name__)
router = APIRouter()


class LeftoverRequest(BaseModel):
    name: Optional[str] = None
    quantity: float = Field(default=1.0, gt=0)
    unit: str = Unit.ST.value


def _listing(scope: OwnerScope, meals) -> dict:
    repo = scope.services.meal_plan
    error = repo.error(scope.owner_id)
    start, end = repo.window(scope.owner_id)
    return {"ok": error is None, "meals": meals, "start": start, "end": end, "error": error}


@router.get("")
async def list_meals(
    start: Optional[date] = None,
    end: Optional[date] = None,
    scope: OwnerScope = Depends(get_scope),
):
    meals = await scope.services.meal_plan.list(scope.owner_id, start, end)
    return _listing(scope, meals)


@router.post("", status_code=201)
async def add_meal(body: NewMealPlanEntry, scope: OwnerScope = Depends(get_scope)):
    meals = await scope.services.meal_plan.add(scope.owner_id, body)
    return _listing(scope, meals)


@router.patch("/{meal_id}")
async def edit_meal(meal_id: str, body: MealPlanUpdate, scope: OwnerScope = Depends(get_scope)):
    meals = await scope.services.meal_plan.update(scope.owner_id, meal_id, body)
    return _listing(scope, meals)


@router.delete("/{meal_id}")
async def delete_meal(meal_id: str, scope: OwnerScope = Depends(get_scope)):
    meals = await scope.services.meal_plan.delete(scope.owner_id, meal_id)
    return _listing(scope, meals)


@router.post("/{meal_id}/leftover", status_code=201)
async def save_leftover(meal_id: str, body: LeftoverRequest, scope: OwnerScope = Depends(get_scope)):
    """Store the meal's remainder as an inventory item and remember its name on the meal."""
    meal_plan = scope.services.meal_plan
    meal = await meal_plan.find(scope.owner_id, meal_id)
    if meal is None:
        return JSONResponse({"ok": False, "message": "Meal not found."}, status_code=404)

    name = (body.name or "").strip() or f"Leftover {meal.custom_dish or meal.meal_type.value}"
    await scope.services.inventory.save_leftover(
        scope.owner_id,
        NewInventoryItem(name=name, quantity=body.quantity, unit=body.unit, category=Category.CHILLED.value),
    )
    meals = await meal_plan.update(scope.owner_id, meal_id, MealPlanUpdate(leftover_name=name))
    logger.info("Saved leftover %r from meal id=%s owner=%s", name, meal_id, scope.owner_id)
    return _listing(scope, meals)
