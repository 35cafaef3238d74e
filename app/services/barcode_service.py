# app/services/barcode_service.py
"""
Barcode lookup against Open Food Facts.

Best effort: the product name, a category guessed from the category tags and a
quantity parsed from the free-form quantity string. Price is never known.
"""
from __future__ import annotations

import logging
import re
from datetime import date, timedelta
from typing import Any, Dict, Optional, Tuple

import httpx

from app.config.settings import settings
from app.models.domain import Category, NewInventoryItem, Unit
from app.services.errors import SuggestionServiceError

logger = logging.getLogger(__name__)

UNKNOWN_PRODUCT_NAME = "Unknown item"

# checked in order; first hit wins
_CATEGORY_KEYWORDS = (
    (Category.DAIRY, ("dairy", "milk", "cheese")),
    (Category.PRODUCE, ("fruit", "vegetable")),
    (Category.MEAT_FISH, ("meat", "fish")),
    (Category.DRINKS, ("beverage", "drink")),
    (Category.PANTRY, ("pantry", "pasta", "rice")),
)

_QUANTITY_RE = re.compile(r"(\d+(?:[.,]\d+)?)\s*(kg|g|ml|cl|dl|l)\b", re.IGNORECASE)


def guess_category(categories_tags: Any) -> str:
    tags = " ".join(categories_tags or []).lower()
    for category, keywords in _CATEGORY_KEYWORDS:
        if any(k in tags for k in keywords):
            return category.value
    return Category.OTHER.value


def parse_quantity(raw: Optional[str]) -> Tuple[float, str]:
    """'500 g' -> (500.0, 'g'); anything unparseable -> (1.0, 'st')."""
    if not raw:
        return 1.0, Unit.ST.value
    match = _QUANTITY_RE.search(raw)
    if not match:
        return 1.0, Unit.ST.value
    amount = float(match.group(1).replace(",", "."))
    return amount, match.group(2).lower()


class BarcodeService:

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or settings.openfoodfacts_base_url).rstrip("/")
        self.timeout = timeout or settings.barcode_timeout_seconds
        self._transport = transport

    async def _fetch_product(self, barcode: str) -> Dict[str, Any]:
        url = f"{self.base_url}/api/v0/product/{barcode}.json"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.get(url)
                resp.raise_for_status()
                return resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.exception("Barcode lookup failed for %s: %s", barcode, exc)
            raise SuggestionServiceError("Barcode lookup failed.") from exc

    async def lookup(self, barcode: str, today: Optional[date] = None) -> Optional[NewInventoryItem]:
        """Return a product guess, or None when the barcode is unknown."""
        barcode = (barcode or "").strip()
        if not barcode.isdigit():
            return None

        data = await self._fetch_product(barcode)
        if data.get("status") != 1 or not isinstance(data.get("product"), dict):
            logger.info("Barcode %s not found", barcode)
            return None

        product = data["product"]
        name = product.get("product_name_sv") or product.get("product_name") or UNKNOWN_PRODUCT_NAME
        quantity, unit = parse_quantity(product.get("quantity"))
        expiry = (today or date.today()) + timedelta(days=settings.default_expiry_days)

        return NewInventoryItem(
            name=name,
            quantity=quantity,
            unit=unit,
            category=guess_category(product.get("categories_tags")),
            expiry_date=expiry,
            price_info=None,
        )
