"""
Request dependencies: the shared services container and the caller's owner id.

The owner id is resolved once per request from the Supabase access token and then
passed explicitly into every repository and reconciler call.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.config import supabase as supabase_config
from app.services.pantry import PantryServices

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_services(request: Request) -> PantryServices:
    services = getattr(request.app.state, "services", None)
    if services is None:
        services = PantryServices()
        request.app.state.services = services
    return services


async def get_owner_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Missing bearer token")

    client = supabase_config.supabase_client.client
    if client is None:
        raise HTTPException(status_code=503, detail="Authentication backend unavailable")

    try:
        resp = await asyncio.to_thread(client.auth.get_user, credentials.credentials)
    except Exception as exc:
        logger.warning("Token verification failed: %s", exc)
        raise HTTPException(status_code=401, detail="Invalid or expired token") from exc

    user = getattr(resp, "user", None)
    user_id = getattr(user, "id", None)
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    return str(user_id)


@dataclass
class OwnerScope:
    owner_id: str
    services: PantryServices


async def get_scope(
    owner_id: str = Depends(get_owner_id),
    services: PantryServices = Depends(get_services),
) -> OwnerScope:
    await services.attach(owner_id)
    return OwnerScope(owner_id=owner_id, services=services)
