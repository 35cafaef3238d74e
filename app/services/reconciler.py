# app/services/reconciler.py
"""
Cooking deduction reconciler.

Turns AI-suggested deductions for one cooked dish into committed state across three
repositories, strictly in this order:

  1. resolve each suggestion against the inventory snapshot (unmatched ids are skipped)
  2. apportion cost: price_info * deduct_amount / quantity (0 when no price)
  3. build session items and consumption logs in memory
  4. create the cooking session (abort here leaves everything untouched)
  5. add the session items one by one
  6. decrement or delete each inventory row
  7. append the consumption logs
  8. refresh the inventory cache

Every write is awaited before the next one starts. There is no rollback: a failure
aborts the remaining steps, leaves the committed ones in place and is reported as a
single message on the returned outcome.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from app.models.domain import (
    ConsumptionReason,
    CookingSessionItem,
    DeductionSuggestion,
    InventoryItem,
    NewConsumptionLog,
    utcnow,
)
from app.services.consumption_log_repository import ConsumptionLogRepository
from app.services.cooking_session_repository import CookingSessionRepository
from app.services.errors import NO_OWNER_MESSAGE, PantryError, RecordStoreError
from app.services.inventory_repository import InventoryRepository

logger = logging.getLogger(__name__)

DEFAULT_FAILURE_MESSAGE = "Could not save the cooking session."


def cost_used(item: InventoryItem, deduct_amount: float) -> float:
    """Share of the item's recorded price consumed by `deduct_amount`.

    price_info is the price of the whole current quantity, so the share is relative
    to the pre-deduction quantity.
    """
    if not item.price_info:
        return 0.0
    if item.quantity <= 0:
        # nothing left to apportion against: the whole recorded price is consumed
        return float(item.price_info)
    return item.price_info * (deduct_amount / item.quantity)


@dataclass
class PlannedDeduction:
    suggestion: DeductionSuggestion
    item: InventoryItem
    cost: float

    @property
    def new_quantity(self) -> float:
        return self.item.quantity - self.suggestion.deduct_amount

    @property
    def deletes_item(self) -> bool:
        return self.new_quantity <= 0


@dataclass
class DeductionPlan:
    dish_name: str
    deductions: List[PlannedDeduction] = field(default_factory=list)
    skipped: List[DeductionSuggestion] = field(default_factory=list)
    session_items: List[CookingSessionItem] = field(default_factory=list)
    logs: List[NewConsumptionLog] = field(default_factory=list)

    @property
    def total_cost(self) -> float:
        return sum(d.cost for d in self.deductions)


def build_plan(
    suggestions: Iterable[DeductionSuggestion],
    inventory: Iterable[InventoryItem],
    dish_name: str,
    now: datetime,
) -> DeductionPlan:
    """Steps 1-3: resolve, cost and build records without touching the store."""
    by_id: Dict[str, InventoryItem] = {item.id: item for item in inventory}
    plan = DeductionPlan(dish_name=dish_name)

    for suggestion in suggestions:
        item = by_id.get(suggestion.item_id)
        if item is None:
            plan.skipped.append(suggestion)
            continue

        cost = cost_used(item, suggestion.deduct_amount)
        plan.deductions.append(PlannedDeduction(suggestion=suggestion, item=item, cost=cost))
        plan.session_items.append(
            CookingSessionItem(
                item_name=item.name,
                quantity_used=suggestion.deduct_amount,
                unit=item.unit,
                cost=cost,
            )
        )
        plan.logs.append(
            NewConsumptionLog(
                date=now,
                item_name=item.name,
                cost=cost,
                quantity_used=suggestion.deduct_amount,
                unit=item.unit,
                reason=ConsumptionReason.COOKED,
                dish_name=dish_name,
            )
        )
    return plan


@dataclass
class ReconciliationOutcome:
    ok: bool
    dish_name: str
    session_id: Optional[str] = None
    total_cost: float = 0.0
    completed_steps: List[str] = field(default_factory=list)
    deleted_item_ids: List[str] = field(default_factory=list)
    updated_item_ids: List[str] = field(default_factory=list)
    skipped_item_ids: List[str] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "dish_name": self.dish_name,
            "session_id": self.session_id,
            "total_cost": self.total_cost,
            "completed_steps": list(self.completed_steps),
            "deleted_item_ids": list(self.deleted_item_ids),
            "updated_item_ids": list(self.updated_item_ids),
            "skipped_item_ids": list(self.skipped_item_ids),
            "error": self.error,
        }


class DeductionReconciler:

    def __init__(
        self,
        inventory: InventoryRepository,
        sessions: CookingSessionRepository,
        logs: ConsumptionLogRepository,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.inventory = inventory
        self.sessions = sessions
        self.logs = logs
        self._clock = clock

    async def reconcile(
        self,
        owner_id: Optional[str],
        suggestions: List[DeductionSuggestion],
        dish_name: str,
    ) -> ReconciliationOutcome:
        outcome = ReconciliationOutcome(ok=False, dish_name=dish_name)
        if not owner_id:
            outcome.error = NO_OWNER_MESSAGE
            return outcome

        try:
            await self._run(owner_id, suggestions, dish_name, outcome)
        except PantryError as exc:
            logger.exception(
                "Reconciliation for %r aborted after steps %s: %s",
                dish_name,
                outcome.completed_steps,
                exc.message,
            )
            outcome.error = exc.message or DEFAULT_FAILURE_MESSAGE
            return outcome
        except Exception as exc:
            logger.exception(
                "Unexpected error reconciling %r after steps %s: %s",
                dish_name,
                outcome.completed_steps,
                exc,
            )
            outcome.error = str(exc) or DEFAULT_FAILURE_MESSAGE
            return outcome

        outcome.ok = True
        return outcome

    async def _run(
        self,
        owner_id: str,
        suggestions: List[DeductionSuggestion],
        dish_name: str,
        outcome: ReconciliationOutcome,
    ) -> None:
        snapshot = await self.inventory.list(owner_id)
        # an unreadable inventory would turn every suggestion into a skip
        load_error = self.inventory.error(owner_id)
        if load_error:
            raise RecordStoreError(load_error, table=self.inventory.table, operation="list")
        plan = build_plan(suggestions, snapshot, dish_name, self._clock())
        outcome.total_cost = plan.total_cost
        outcome.skipped_item_ids = [s.item_id for s in plan.skipped]
        if plan.skipped:
            logger.debug(
                "Skipping %d suggestion(s) not in inventory: %s",
                len(plan.skipped),
                outcome.skipped_item_ids,
            )
        logger.info(
            "Reconciling %r for owner=%s: %d deduction(s), total_cost=%.2f",
            dish_name,
            owner_id,
            len(plan.deductions),
            plan.total_cost,
        )

        session_id = await self.sessions.create_session(owner_id, dish_name, plan.total_cost)
        outcome.session_id = session_id
        outcome.completed_steps.append("session")

        for session_item in plan.session_items:
            await self.sessions.add_session_item(
                owner_id, session_item.model_copy(update={"session_id": session_id})
            )
        outcome.completed_steps.append("session_items")

        for deduction in plan.deductions:
            if deduction.deletes_item:
                await self.inventory.remove_item(owner_id, deduction.item.id)
                outcome.deleted_item_ids.append(deduction.item.id)
            else:
                await self.inventory.update_quantity(
                    owner_id, deduction.item.id, deduction.new_quantity
                )
                outcome.updated_item_ids.append(deduction.item.id)
        outcome.completed_steps.append("inventory")

        for log in plan.logs:
            await self.logs.add(owner_id, log)
        outcome.completed_steps.append("consumption_logs")

        await self.inventory.refresh(owner_id)
        outcome.completed_steps.append("refresh")
