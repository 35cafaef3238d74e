"""
Consumption log endpoints (manual entry, edit, delete) and spending statistics.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.api.deps import OwnerScope, get_scope
from app.models.domain import ConsumptionReason
from app.services.stats_service import summarize

router = APIRouter()


class ManualLogRequest(BaseModel):
    date: Optional[datetime] = None
    item_name: str = ""
    cost: float = 0.0
    quantity_used: float = 0.0
    unit: Optional[str] = None
    reason: ConsumptionReason = ConsumptionReason.SNACK
    dish_name: Optional[str] = None
    notes: Optional[str] = None


class LogUpdateRequest(BaseModel):
    date: Optional[datetime] = None
    item_name: Optional[str] = None
    cost: Optional[float] = None
    quantity_used: Optional[float] = None
    unit: Optional[str] = None
    reason: Optional[ConsumptionReason] = None
    dish_name: Optional[str] = None
    notes: Optional[str] = None


def _listing(scope: OwnerScope) -> dict:
    repo = scope.services.logs
    error = repo.error(scope.owner_id)
    return {"ok": error is None, "logs": repo.snapshot(scope.owner_id), "error": error}


@router.get("/logs")
async def list_logs(scope: OwnerScope = Depends(get_scope)):
    await scope.services.logs.list(scope.owner_id)
    return _listing(scope)


@router.post("/logs", status_code=201)
async def add_manual_log(body: ManualLogRequest, scope: OwnerScope = Depends(get_scope)):
    await scope.services.manual_logs.submit(scope.owner_id, body.model_dump())
    return _listing(scope)


@router.patch("/logs/{log_id}")
async def edit_log(log_id: str, body: LogUpdateRequest, scope: OwnerScope = Depends(get_scope)):
    fields = body.model_dump(exclude_unset=True)
    # keep the stored name when the edit does not touch it
    if "item_name" not in fields:
        current = next(
            (log for log in await scope.services.logs.list(scope.owner_id) if log.id == log_id),
            None,
        )
        if current is None:
            return JSONResponse({"ok": False, "message": "Consumption log not found."}, status_code=404)
        fields["item_name"] = current.item_name
    await scope.services.manual_logs.submit(scope.owner_id, fields, log_id=log_id)
    return _listing(scope)


@router.delete("/logs/{log_id}")
async def delete_log(log_id: str, scope: OwnerScope = Depends(get_scope)):
    await scope.services.logs.delete(scope.owner_id, log_id)
    return _listing(scope)


@router.get("/stats")
async def stats(scope: OwnerScope = Depends(get_scope)):
    logs = await scope.services.logs.list(scope.owner_id)
    inventory = await scope.services.inventory.list(scope.owner_id)
    return {"ok": True, **summarize(logs, inventory)}
