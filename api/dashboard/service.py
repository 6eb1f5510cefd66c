"""
Maintenance dashboard summary.
"""

from __future__ import annotations

from datetime import date

from core.db import Database

from . import repository


def completion_rate(completed: int, due: int) -> float:
    if due <= 0:
        return 0.0
    return min(round(completed / due * 100, 1), 100.0)


async def dashboard_summary(db: Database, *, company_id: int, today: date | None = None) -> dict:
    today = today or date.today()
    row = await repository.schedule_counts(db, company_id=company_id, today=today)

    completed = int(row.get("completed_this_month") or 0)
    due = int(row.get("due_this_month") or 0)
    return {
        "company_id": company_id,
        "pending_count": int(row.get("pending_count") or 0),
        "overdue_count": int(row.get("overdue_count") or 0),
        "completed_this_month": completed,
        "completion_rate": completion_rate(completed, due),
    }
