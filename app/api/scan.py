"""
Scanning endpoints: photo/receipt extraction and barcode lookup.

Extraction only returns candidates; nothing is stored until /scan/confirm.
"""
from __future__ import annotations

import logging
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from app.api.deps import OwnerScope, get_scope
from app.models.domain import ItemSource, NewInventoryItem
from app.services.errors import ValidationError
from app.services.image_service import sniff_mime

logger = logging.getLogger(__name__)
router = APIRouter()


class ScanImageRequest(BaseModel):
    image_base64: Optional[str] = None
    image_url: Optional[str] = None


class ConfirmScanRequest(BaseModel):
    detected_type: Literal["receipt", "food_object"] = "food_object"
    items: List[NewInventoryItem] = Field(min_length=1)


async def _analyse(scope: OwnerScope, image_bytes: bytes, mime_type: str) -> dict:
    services = scope.services
    ocr = await services.images.describe_image(image_bytes)
    result = await services.suggestions.extract_items(image_bytes, mime_type, ocr=ocr)
    logger.info(
        "Scan for owner=%s: %s with %d item(s)", scope.owner_id, result.detected_type, len(result.items)
    )
    return {"ok": True, "result": result}


@router.post("/scan")
async def scan_upload(file: UploadFile = File(...), scope: OwnerScope = Depends(get_scope)):
    image_bytes = await file.read()
    if not image_bytes:
        raise ValidationError("The uploaded image is empty.")
    mime_type = file.content_type if (file.content_type or "").startswith("image/") else sniff_mime(image_bytes)
    return await _analyse(scope, image_bytes, mime_type)


@router.post("/scan/image")
async def scan_image(body: ScanImageRequest, scope: OwnerScope = Depends(get_scope)):
    images = scope.services.images
    if body.image_base64:
        image_bytes, mime_type = images.decode_base64(body.image_base64)
    elif body.image_url:
        image_bytes, mime_type = await images.download(body.image_url)
    else:
        raise ValidationError("Provide image_base64 or image_url.")
    return await _analyse(scope, image_bytes, mime_type)


@router.post("/scan/confirm", status_code=201)
async def confirm_scan(body: ConfirmScanRequest, scope: OwnerScope = Depends(get_scope)):
    source = ItemSource.RECEIPT if body.detected_type == "receipt" else ItemSource.SCAN
    items = await scope.services.inventory.add_items(scope.owner_id, body.items, source)
    error = scope.services.inventory.error(scope.owner_id)
    return {"ok": error is None, "items": items, "error": error}


@router.get("/barcode/{barcode}")
async def lookup_barcode(barcode: str, scope: OwnerScope = Depends(get_scope)):
    product = await scope.services.barcodes.lookup(barcode)
    if product is None:
        return JSONResponse({"ok": False, "message": "Product not found."}, status_code=404)
    return {"ok": True, "item": product, "source": ItemSource.BARCODE.value}
