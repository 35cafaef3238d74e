# app/services/pantry.py
"""
Wiring of repositories, reconciler and external collaborators.

One PantryServices instance lives on `app.state.services` for the whole process;
repositories keep one cache per owner id, so nothing here is user-specific.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from app.services.barcode_service import BarcodeService
from app.services.consumption_log_repository import ConsumptionLogRepository
from app.services.cooking_session_repository import CookingSessionRepository
from app.services.image_service import ImageService
from app.services.inventory_repository import InventoryRepository
from app.services.manual_log_service import ManualLogService
from app.services.meal_plan_repository import MealPlanRepository
from app.services.realtime import build_change_feed
from app.services.reconciler import DeductionReconciler
from app.services.suggestion_service import SuggestionService

logger = logging.getLogger(__name__)


class PantryServices:

    def __init__(
        self,
        client: Any = None,
        change_feed: Any = None,
        suggestions: Optional[SuggestionService] = None,
        images: Optional[ImageService] = None,
        barcodes: Optional[BarcodeService] = None,
    ) -> None:
        self.change_feed = change_feed if change_feed is not None else build_change_feed()
        self.inventory = InventoryRepository(client, self.change_feed)
        self.logs = ConsumptionLogRepository(client, self.change_feed)
        self.sessions = CookingSessionRepository(client)
        self.meal_plan = MealPlanRepository(client)
        self.reconciler = DeductionReconciler(self.inventory, self.sessions, self.logs)
        self.manual_logs = ManualLogService(self.logs)
        self.suggestions = suggestions or SuggestionService()
        self.images = images or ImageService()
        self.barcodes = barcodes or BarcodeService()

    async def attach(self, owner_id: str) -> None:
        """Start live updates for the owner's inventory and logs (idempotent)."""
        await self.inventory.subscribe(owner_id)
        await self.logs.subscribe(owner_id)

    async def close(self) -> None:
        await self.change_feed.close()
        logger.info("Pantry services closed")
