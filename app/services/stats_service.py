# app/services/stats_service.py
"""Consumption statistics for the stats endpoint."""
from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from app.models.domain import ConsumptionLog, ConsumptionReason, InventoryItem

CHART_DAYS = 7


def summarize(
    logs: List[ConsumptionLog],
    inventory: List[InventoryItem],
    today: Optional[date] = None,
) -> Dict[str, Any]:
    today = today or date.today()
    days = [today - timedelta(days=offset) for offset in range(CHART_DAYS - 1, -1, -1)]
    per_day = {d: 0.0 for d in days}
    per_reason = {reason.value: 0.0 for reason in ConsumptionReason}

    for log in logs:
        log_day = log.date.date()
        if log_day in per_day:
            per_day[log_day] += log.cost
        per_reason[log.reason.value] += log.cost

    return {
        "total_spent": sum(log.cost for log in logs),
        "inventory_value": sum(item.price_info or 0.0 for item in inventory),
        "daily_cost": [{"date": d.isoformat(), "cost": per_day[d]} for d in days],
        "cost_by_reason": per_reason,
    }
