# app/services/consumption_log_repository.py
"""
Consumption log repository: owner-scoped cache of `consumption_logs`, newest first.

Each write is a single store call followed by a full refresh on success. On failure
the error is recorded and re-raised so composite flows (the reconciler) abort.
"""
from __future__ import annotations

import logging
from typing import List

from app.models.domain import ConsumptionLog, ConsumptionLogUpdate, NewConsumptionLog
from app.services.record_store import CachedRepository

logger = logging.getLogger(__name__)


class ConsumptionLogRepository(CachedRepository[ConsumptionLog]):
    table = "consumption_logs"

    async def _fetch(self, owner_id: str) -> List[ConsumptionLog]:
        rows = await self._execute(
            "list",
            lambda t: t.select("*").eq("user_id", owner_id).order("logged_at", desc=True),
        )
        return [ConsumptionLog.from_row(r) for r in rows]

    async def add(self, owner_id: str, log: NewConsumptionLog) -> None:
        row = log.to_row(owner_id)
        logger.info(
            "Adding consumption log item=%r reason=%s owner=%s",
            log.item_name,
            log.reason.value,
            owner_id,
        )
        await self._write(owner_id, "insert", lambda t: t.insert(row))
        await self.refresh(owner_id)

    async def update(self, owner_id: str, log_id: str, changes: ConsumptionLogUpdate) -> None:
        payload = changes.to_row()
        if not payload:
            logger.debug("Nothing to update for consumption log id=%s", log_id)
            return
        logger.info("Updating consumption log id=%s fields=%s owner=%s", log_id, sorted(payload), owner_id)
        await self._write(
            owner_id,
            "update",
            lambda t: t.update(payload).eq("id", log_id).eq("user_id", owner_id),
        )
        await self.refresh(owner_id)

    async def delete(self, owner_id: str, log_id: str) -> None:
        logger.info("Deleting consumption log id=%s owner=%s", log_id, owner_id)
        await self._write(
            owner_id,
            "delete",
            lambda t: t.delete().eq("id", log_id).eq("user_id", owner_id),
        )
        await self.refresh(owner_id)
