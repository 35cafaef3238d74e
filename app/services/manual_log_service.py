# app/services/manual_log_service.py
"""
Manual consumption logging: the override path for things that never went through
the inventory (eating out, unscanned items). No inventory row is touched.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from app.models.domain import ConsumptionLogUpdate, NewConsumptionLog, utcnow
from app.services.consumption_log_repository import ConsumptionLogRepository
from app.services.errors import ValidationError

logger = logging.getLogger(__name__)

EMPTY_NAME_MESSAGE = "Enter a name."


class ManualLogService:

    def __init__(self, logs: ConsumptionLogRepository) -> None:
        self.logs = logs

    def _validate(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        item_name = (fields.get("item_name") or "").strip()
        if not item_name:
            raise ValidationError(EMPTY_NAME_MESSAGE)
        cleaned = dict(fields)
        cleaned["item_name"] = item_name
        if "date" in cleaned and not cleaned["date"]:
            cleaned["date"] = None
        return cleaned

    async def submit(
        self,
        owner_id: str,
        fields: Dict[str, Any],
        log_id: Optional[str] = None,
    ) -> None:
        """
        Create (or, with `log_id`, edit) a log from user-entered fields.

        Raises ValidationError before any store call when the name is blank;
        RecordStoreError propagates from the repository.
        """
        cleaned = self._validate(fields)
        if log_id:
            # an empty date on edit leaves the stored one untouched
            await self.logs.update(owner_id, log_id, ConsumptionLogUpdate(**cleaned))
            return

        if not cleaned.get("date"):
            cleaned["date"] = utcnow()
        log = NewConsumptionLog(**{k: v for k, v in cleaned.items() if v is not None})
        logger.info("Manual consumption log %r (%s) for owner=%s", log.item_name, log.reason.value, owner_id)
        await self.logs.add(owner_id, log)
