"""Database table models and domain view models for the pantry ledger."""
from app.models.database import Base, get_engine, init_schema
from app.models.inventory_item import InventoryItemRow
from app.models.consumption_log import ConsumptionLogRow
from app.models.cooking_session import CookingSessionRow, CookingSessionItemRow
from app.models.meal_plan import MealPlanRow

# Export all models
__all__ = [
    "InventoryItemRow",
    "ConsumptionLogRow",
    "CookingSessionRow",
    "CookingSessionItemRow",
    "MealPlanRow",
    "Base",
    "get_engine",
    "init_schema",
]
