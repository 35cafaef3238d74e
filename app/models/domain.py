"""
Domain view models shared by the repositories, the reconciler and the API.

Rows coming back from Supabase use snake_case column names that differ from
the view model in a few places (``added_at`` -> ``added_date``,
``logged_at`` -> ``date``); the ``from_row`` constructors own that mapping.
"""
from __future__ import annotations

import datetime as dt
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Unit(str, Enum):
    ST = "st"
    KG = "kg"
    G = "g"
    L = "l"
    DL = "dl"
    CL = "cl"
    ML = "ml"
    PKT = "pkt"


class Category(str, Enum):
    PRODUCE = "produce"
    DAIRY = "dairy"
    PANTRY = "pantry"
    FROZEN = "frozen"
    CHILLED = "chilled"
    DRINKS = "drinks"
    MEAT_FISH = "meat_fish"
    OTHER = "other"


class ItemSource(str, Enum):
    SCAN = "scan"
    RECEIPT = "receipt"
    MANUAL = "manual"
    COOKED_REMAINDER = "cooked_remainder"
    BARCODE = "barcode"


class ConsumptionReason(str, Enum):
    COOKED = "cooked"
    EXPIRED = "expired"
    SNACK = "snack"


class MealType(str, Enum):
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"


def _empty_to_none(v: Any) -> Any:
    if isinstance(v, str) and not v.strip():
        return None
    return v


# -----------------------
# Inventory
# -----------------------
class NewInventoryItem(BaseModel):
    """An item about to be added to the inventory (no id yet)."""

    name: str = Field(min_length=1)
    quantity: float = Field(ge=0)
    unit: str = Unit.ST.value
    category: str = Category.OTHER.value
    expiry_date: Optional[date] = None
    price_info: Optional[float] = Field(default=None, ge=0)

    @field_validator("expiry_date", mode="before")
    @classmethod
    def blank_expiry_is_unknown(cls, v: Any) -> Any:
        return _empty_to_none(v)


class InventoryItem(NewInventoryItem):
    id: str
    added_date: datetime
    source: ItemSource = ItemSource.MANUAL

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "InventoryItem":
        return cls(
            id=str(row["id"]),
            name=row["name"],
            quantity=row["quantity"],
            unit=row.get("unit") or Unit.ST.value,
            category=row.get("category") or Category.OTHER.value,
            expiry_date=row.get("expiry_date") or None,
            price_info=row.get("price_info"),
            added_date=row["added_at"],
            source=row.get("source") or ItemSource.MANUAL.value,
        )

    def days_until_expiry(self, today: date) -> Optional[int]:
        if self.expiry_date is None:
            return None
        return (self.expiry_date - today).days


# -----------------------
# Consumption logs
# -----------------------
class NewConsumptionLog(BaseModel):
    date: datetime = Field(default_factory=utcnow)
    item_name: str
    cost: float = 0.0
    quantity_used: float = 0.0
    unit: Optional[str] = None
    reason: ConsumptionReason = ConsumptionReason.SNACK
    dish_name: Optional[str] = None
    notes: Optional[str] = None

    def to_row(self, owner_id: str) -> Dict[str, Any]:
        return {
            "user_id": owner_id,
            "logged_at": self.date.isoformat(),
            "item_name": self.item_name,
            "cost": self.cost,
            "quantity_used": self.quantity_used,
            "unit": self.unit,
            "reason": self.reason.value,
            "dish_name": self.dish_name,
            "notes": self.notes,
        }


class ConsumptionLog(NewConsumptionLog):
    id: str

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "ConsumptionLog":
        return cls(
            id=str(row["id"]),
            date=row.get("logged_at") or row["created_at"],
            item_name=row["item_name"],
            cost=row.get("cost") or 0.0,
            quantity_used=row.get("quantity_used") or 0.0,
            unit=row.get("unit"),
            reason=row["reason"],
            dish_name=row.get("dish_name"),
            notes=row.get("notes"),
        )


class ConsumptionLogUpdate(BaseModel):
    """Partial update; only fields that were explicitly set are written."""

    date: Optional[datetime] = None
    item_name: Optional[str] = None
    cost: Optional[float] = None
    quantity_used: Optional[float] = None
    unit: Optional[str] = None
    reason: Optional[ConsumptionReason] = None
    dish_name: Optional[str] = None
    notes: Optional[str] = None

    def to_row(self) -> Dict[str, Any]:
        fields = self.model_dump(exclude_unset=True)
        payload: Dict[str, Any] = {}
        # empty name/date/reason mean "unchanged"
        if fields.get("date"):
            payload["logged_at"] = fields["date"].isoformat()
        if fields.get("item_name"):
            payload["item_name"] = fields["item_name"]
        if fields.get("reason"):
            payload["reason"] = ConsumptionReason(fields["reason"]).value
        for key in ("cost", "quantity_used", "unit", "dish_name", "notes"):
            if key in fields:
                payload[key] = fields[key]
        return payload


# -----------------------
# Cooking sessions
# -----------------------
class CookingSessionItem(BaseModel):
    id: Optional[str] = None
    session_id: str = ""
    item_name: str
    quantity_used: float
    unit: str
    cost: float

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "CookingSessionItem":
        return cls(
            id=str(row["id"]) if row.get("id") is not None else None,
            session_id=str(row["session_id"]),
            item_name=row["item_name"],
            quantity_used=row["quantity_used"],
            unit=row.get("unit") or "",
            cost=row.get("cost") or 0.0,
        )

    def to_row(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "item_name": self.item_name,
            "quantity_used": self.quantity_used,
            "unit": self.unit,
            "cost": self.cost,
        }


class CookingSession(BaseModel):
    id: str
    user_id: str
    dish_name: str
    created_at: datetime
    total_cost: float
    notes: Optional[str] = None
    items: List[CookingSessionItem] = Field(default_factory=list)

    @classmethod
    def from_row(
        cls, row: Dict[str, Any], items: Optional[List[CookingSessionItem]] = None
    ) -> "CookingSession":
        return cls(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            dish_name=row["dish_name"],
            created_at=row["created_at"],
            total_cost=row.get("total_cost") or 0.0,
            notes=row.get("notes"),
            items=items or [],
        )


# -----------------------
# Meal plan
# -----------------------
class NewMealPlanEntry(BaseModel):
    """One planned meal: a recipe or a free-text dish for one person and slot."""

    date: dt.date
    meal_type: MealType
    person: str = Field(min_length=1)
    recipe_id: Optional[str] = None
    custom_dish: Optional[str] = None
    extra_servings: int = Field(default=0, ge=0)
    leftover_name: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("custom_dish", "notes", "recipe_id", mode="before")
    @classmethod
    def blank_is_none(cls, v: Any) -> Any:
        return _empty_to_none(v)

    def to_row(self, owner_id: str) -> Dict[str, Any]:
        return {
            "user_id": owner_id,
            "date": self.date.isoformat(),
            "meal_type": self.meal_type.value,
            "person": self.person,
            "recipe_id": self.recipe_id,
            "custom_dish": self.custom_dish,
            "extra_servings": self.extra_servings,
            "leftover_name": self.leftover_name,
            "notes": self.notes,
        }


class MealPlanEntry(NewMealPlanEntry):
    id: str

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "MealPlanEntry":
        return cls(
            id=str(row["id"]),
            date=row["date"],
            meal_type=row["meal_type"],
            person=row["person"],
            recipe_id=row.get("recipe_id"),
            custom_dish=row.get("custom_dish"),
            extra_servings=row.get("extra_servings") or 0,
            leftover_name=row.get("leftover_name"),
            notes=row.get("notes"),
        )


class MealPlanUpdate(BaseModel):
    date: Optional[dt.date] = None
    meal_type: Optional[MealType] = None
    person: Optional[str] = None
    recipe_id: Optional[str] = None
    custom_dish: Optional[str] = None
    extra_servings: Optional[int] = Field(default=None, ge=0)
    leftover_name: Optional[str] = None
    notes: Optional[str] = None

    def to_row(self) -> Dict[str, Any]:
        fields = self.model_dump(exclude_unset=True)
        # date, slot and person identify the meal; null there means "unchanged"
        for key in ("date", "meal_type", "person"):
            if not fields.get(key):
                fields.pop(key, None)
        if "date" in fields:
            fields["date"] = fields["date"].isoformat()
        if "meal_type" in fields:
            fields["meal_type"] = MealType(fields["meal_type"]).value
        return fields


# -----------------------
# Suggestion service payloads (never persisted)
# -----------------------
class DeductionSuggestion(BaseModel):
    item_id: str
    name: str
    current_quantity: Optional[float] = None
    deduct_amount: float = Field(ge=0)
    unit: Optional[str] = None

    @field_validator("item_id", mode="before")
    @classmethod
    def coerce_item_id(cls, v: Any) -> Any:
        return str(v) if v is not None else v


class ScanResult(BaseModel):
    detected_type: str = "food_object"
    items: List[NewInventoryItem] = Field(default_factory=list)
    total_cost: Optional[float] = None


class Recipe(BaseModel):
    id: str
    title: str
    description: str = ""
    ingredients: List[str] = Field(default_factory=list)
    missing_ingredients: List[str] = Field(default_factory=list)
    instructions: List[str] = Field(default_factory=list)
    cook_time: str = ""
