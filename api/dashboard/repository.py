"""
Maintenance dashboard queries.
"""

from __future__ import annotations

from datetime import date

from core.db import Database

OPEN_STATUSES = ("SCHEDULED", "IN_PROGRESS")


async def schedule_counts(db: Database, *, company_id: int, today: date) -> dict:
    """
    All dashboard counters in one pass over the company's schedules.

    Month boundaries are derived from `today` so tests can pin the date.
    """
    month_start = today.replace(day=1)
    row = await db.fetch_one(
        """
        SELECT
          count(*) FILTER (
            WHERE status = ANY($2::text[]) AND scheduled_date >= $3::date
          ) AS pending_count,
          count(*) FILTER (
            WHERE status = 'OVERDUE'
               OR (status = ANY($2::text[]) AND scheduled_date < $3::date)
          ) AS overdue_count,
          count(*) FILTER (
            WHERE status = 'COMPLETED'
              AND completed_at >= $4::date
              AND completed_at < ($4::date + interval '1 month')
          ) AS completed_this_month,
          count(*) FILTER (
            WHERE status <> 'CANCELLED'
              AND scheduled_date >= $4::date
              AND scheduled_date < ($4::date + interval '1 month')
          ) AS due_this_month
        FROM maintenance_schedules
        WHERE company_id = $1
        """,
        [company_id, list(OPEN_STATUSES), today, month_start],
    )
    return row or {}
