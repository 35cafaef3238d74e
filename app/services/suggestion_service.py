# app/services/suggestion_service.py
"""
Suggestion service backed by the OpenAI chat completions API.

Three operations, all opaque to the rest of the app:
  - suggest_deductions: dish description + inventory -> DeductionSuggestion list
  - suggest_recipes: inventory with days-until-expiry -> Recipe list
  - extract_items: image (+ optional OCR context) -> ScanResult

Design goals:
- Blocking SDK calls run off the event loop.
- JSON response format; markdown fences are stripped before parsing.
- Malformed entries are dropped, not fatal. Anything else (no client, API error,
  unparseable output) raises SuggestionServiceError. No retries; callers convert the
  error into a "please try again" message.
"""
from __future__ import annotations

import asyncio
import base64
import json
import logging
import uuid
from datetime import date
from typing import Any, Dict, List, Optional

from openai import OpenAI, OpenAIError
from pydantic import ValidationError as PydanticValidationError

from app.config.settings import settings
from app.models.domain import (
    Category,
    DeductionSuggestion,
    InventoryItem,
    NewInventoryItem,
    Recipe,
    ScanResult,
    Unit,
)
from app.services.errors import SuggestionServiceError

logger = logging.getLogger(__name__)

RECIPE_COUNT = 3

_DEDUCTION_PROMPT = """I have just cooked: "{dish}".
This is my current inventory (JSON): {inventory}

Task: identify which inventory items were most likely used and how much of each.
Be conservative but realistic: with 1 kg of pasta and 2 portions of pasta cooked,
deduct about 0.2 kg. If an ingredient is not in the inventory, ignore it.

Answer with a JSON object: {{"deductions": [{{"itemId": <id from the inventory>,
"name": str, "currentQuantity": number, "deductAmount": number, "unit": str}}]}}"""

_RECIPE_PROMPT = """You are a creative cook. Suggest {count} dishes based on what I have at home.

Inventory (JSON, daysLeft is days until expiry, null when unknown): {inventory}

Rules:
1. Strongly prefer ingredients with few daysLeft.
2. It is fine to need a few extra basics (spices, staples); list them under missingIngredients.

Answer with a JSON object: {{"recipes": [{{"id": str, "title": str, "description": str,
"ingredients": [str], "missingIngredients": [str], "instructions": [str], "cookTime": str}}]}}"""

_SCAN_PROMPT = """Analyse this image. It is either a grocery receipt or a photo of one or more food items.

1. Receipt: extract every food item with its price. Estimate a generous expiryDate
   from the product type (milk about 7 days, canned goods about 1 year).
2. Food photo: identify the items, estimate amount/weight, a best-before date and an
   approximate price.

Today is {today}. Units must be one of {units}; categories one of {categories}.
{ocr_block}
Answer with a JSON object: {{"detectedType": "receipt" | "food_object", "totalCost": number | null,
"items": [{{"name": str, "quantity": number, "unit": str, "category": str,
"expiryDate": "YYYY-MM-DD", "priceInfo": number | null}}]}}"""


def clean_json(text: str) -> str:
    """Strip markdown code fences a model may wrap around JSON."""
    cleaned = (text or "").strip()
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        lines = [line for line in lines[1:] if not line.strip().startswith("```")]
        cleaned = "\n".join(lines)
    return cleaned.strip()


def _list_under(payload: Any, key: str) -> List[Any]:
    # accept either {"key": [...]} or a bare list
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        value = payload.get(key)
        if isinstance(value, list):
            return value
    return []


class SuggestionService:

    def __init__(self, client: Optional[Any] = None) -> None:
        self.openai_client = client
        if self.openai_client is None and settings.openai_api_key:
            try:
                self.openai_client = OpenAI(api_key=settings.openai_api_key)
                logger.info("OpenAI client created")
            except OpenAIError as exc:
                logger.exception("Failed creating OpenAI client: %s", exc)
                self.openai_client = None
        if self.openai_client is None:
            logger.info("SuggestionService: OpenAI client not configured.")

        self.model = settings.openai_model
        self.vision_model = settings.openai_vision_model

    # -----------------------
    # Internal helpers
    # -----------------------
    async def _complete_json(self, messages: List[Dict[str, Any]], model: str, purpose: str) -> Any:
        if self.openai_client is None:
            raise SuggestionServiceError("Suggestion service is not configured.")

        def _call():
            return self.openai_client.chat.completions.create(
                model=model,
                messages=messages,
                response_format={"type": "json_object"},
            )

        try:
            resp = await asyncio.to_thread(_call)
        except Exception as exc:
            logger.exception("OpenAI %s call failed: %s", purpose, exc)
            raise SuggestionServiceError(f"{purpose} request failed") from exc

        try:
            content = resp.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as exc:
            logger.exception("OpenAI %s response had no content", purpose)
            raise SuggestionServiceError(f"{purpose} returned no data") from exc
        if not content:
            raise SuggestionServiceError(f"{purpose} returned no data")

        try:
            return json.loads(clean_json(content))
        except json.JSONDecodeError as exc:
            logger.warning("OpenAI %s returned non-JSON content: %r", purpose, content[:200])
            raise SuggestionServiceError(f"{purpose} returned invalid JSON") from exc

    # -----------------------
    # Public API
    # -----------------------
    async def suggest_deductions(
        self, dish: str, inventory: List[InventoryItem]
    ) -> List[DeductionSuggestion]:
        context = [
            {"id": i.id, "name": i.name, "quantity": i.quantity, "unit": i.unit}
            for i in inventory
        ]
        prompt = _DEDUCTION_PROMPT.format(dish=dish, inventory=json.dumps(context, ensure_ascii=False))
        payload = await self._complete_json(
            [{"role": "user", "content": prompt}], self.model, "deduction"
        )

        suggestions: List[DeductionSuggestion] = []
        for raw in _list_under(payload, "deductions"):
            if not isinstance(raw, dict):
                continue
            try:
                suggestions.append(
                    DeductionSuggestion(
                        item_id=raw.get("itemId"),
                        name=raw.get("name") or "",
                        current_quantity=raw.get("currentQuantity"),
                        deduct_amount=raw.get("deductAmount"),
                        unit=raw.get("unit"),
                    )
                )
            except PydanticValidationError:
                logger.debug("Dropping malformed deduction suggestion: %r", raw)
        logger.info("Deduction suggestions for %r: %d", dish, len(suggestions))
        return suggestions

    async def suggest_recipes(
        self, inventory: List[InventoryItem], today: Optional[date] = None
    ) -> List[Recipe]:
        today = today or date.today()
        context = [
            {
                "name": i.name,
                "qty": f"{i.quantity:g} {i.unit}",
                "daysLeft": i.days_until_expiry(today),
            }
            for i in inventory
        ]
        prompt = _RECIPE_PROMPT.format(
            count=RECIPE_COUNT, inventory=json.dumps(context, ensure_ascii=False)
        )
        payload = await self._complete_json(
            [{"role": "user", "content": prompt}], self.model, "recipe"
        )

        recipes: List[Recipe] = []
        for raw in _list_under(payload, "recipes"):
            if not isinstance(raw, dict):
                continue
            try:
                recipes.append(
                    Recipe(
                        id=str(raw.get("id") or uuid.uuid4()),
                        title=raw.get("title"),
                        description=raw.get("description") or "",
                        ingredients=raw.get("ingredients") or [],
                        missing_ingredients=raw.get("missingIngredients") or [],
                        instructions=raw.get("instructions") or [],
                        cook_time=raw.get("cookTime") or "",
                    )
                )
            except PydanticValidationError:
                logger.debug("Dropping malformed recipe: %r", raw)
        return recipes

    async def extract_items(
        self,
        image_bytes: bytes,
        mime_type: str = "image/jpeg",
        ocr: Optional[Dict[str, Any]] = None,
        today: Optional[date] = None,
    ) -> ScanResult:
        if not image_bytes:
            raise SuggestionServiceError("No image data to analyse.")

        ocr = ocr or {}
        ocr_lines = []
        if ocr.get("text"):
            ocr_lines.append(f"OCR text of the image:\n{ocr['text'][:4000]}")
        if ocr.get("labels"):
            ocr_lines.append(f"Detected labels: {', '.join(ocr['labels'])}")

        prompt = _SCAN_PROMPT.format(
            today=(today or date.today()).isoformat(),
            units=", ".join(u.value for u in Unit),
            categories=", ".join(c.value for c in Category),
            ocr_block="\n".join(ocr_lines),
        )
        data_url = f"data:{mime_type};base64,{base64.b64encode(image_bytes).decode()}"
        messages = [
            {
                "role": "user",
                "content": [
                    {"type": "image_url", "image_url": {"url": data_url}},
                    {"type": "text", "text": prompt},
                ],
            }
        ]
        payload = await self._complete_json(messages, self.vision_model, "scan")
        if not isinstance(payload, dict):
            raise SuggestionServiceError("scan returned an unexpected shape")

        items: List[NewInventoryItem] = []
        for raw in _list_under(payload, "items"):
            if not isinstance(raw, dict):
                continue
            try:
                items.append(
                    NewInventoryItem(
                        name=raw.get("name"),
                        quantity=raw.get("quantity") or 1,
                        unit=raw.get("unit") or Unit.ST.value,
                        category=raw.get("category") or Category.OTHER.value,
                        expiry_date=raw.get("expiryDate"),
                        price_info=raw.get("priceInfo"),
                    )
                )
            except PydanticValidationError:
                logger.debug("Dropping malformed scanned item: %r", raw)

        detected = payload.get("detectedType")
        total = payload.get("totalCost")
        return ScanResult(
            detected_type=detected if detected in ("receipt", "food_object") else "food_object",
            items=items,
            total_cost=float(total) if isinstance(total, (int, float)) else None,
        )
