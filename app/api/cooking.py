"""
Cooking endpoints: ask for deduction suggestions, confirm them through the
reconciler, browse cooking sessions and get recipe ideas.
"""
from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.api.deps import OwnerScope, get_scope
from app.models.domain import DeductionSuggestion
from app.services.errors import ValidationError

logger = logging.getLogger(__name__)
router = APIRouter()


class SuggestRequest(BaseModel):
    dish: str


class ConfirmRequest(BaseModel):
    dish_name: str
    suggestions: List[DeductionSuggestion]


@router.post("/cooking/suggest")
async def suggest_deductions(body: SuggestRequest, scope: OwnerScope = Depends(get_scope)):
    dish = body.dish.strip()
    if not dish:
        raise ValidationError("Describe what you cooked.")
    inventory = await scope.services.inventory.list(scope.owner_id)
    suggestions = await scope.services.suggestions.suggest_deductions(dish, inventory)
    return {"ok": True, "dish": dish, "suggestions": suggestions}


@router.post("/cooking/confirm")
async def confirm_deductions(body: ConfirmRequest, scope: OwnerScope = Depends(get_scope)):
    outcome = await scope.services.reconciler.reconcile(
        scope.owner_id, body.suggestions, body.dish_name.strip()
    )
    payload = outcome.to_dict()
    if not outcome.ok:
        payload["message"] = outcome.error
        return JSONResponse(payload, status_code=502)
    payload["inventory"] = scope.services.inventory.snapshot(scope.owner_id)
    return payload


@router.get("/sessions")
async def list_sessions(scope: OwnerScope = Depends(get_scope)):
    repo = scope.services.sessions
    sessions = await repo.list(scope.owner_id)
    error = repo.error(scope.owner_id)
    return {"ok": error is None, "sessions": sessions, "error": error}


@router.get("/sessions/{session_id}")
async def get_session(session_id: str, scope: OwnerScope = Depends(get_scope)):
    session = await scope.services.sessions.get_session(scope.owner_id, session_id)
    if session is None:
        return JSONResponse({"ok": False, "message": "Cooking session not found."}, status_code=404)
    return {"ok": True, "session": session}


@router.get("/recipes")
async def suggest_recipes(scope: OwnerScope = Depends(get_scope)):
    inventory = await scope.services.inventory.list(scope.owner_id)
    recipes = await scope.services.suggestions.suggest_recipes(inventory)
    return {"ok": True, "recipes": recipes}
