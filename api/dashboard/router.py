"""
Maintenance dashboard endpoint.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from core.db import Database
from core.dependencies import get_database

from . import service

router = APIRouter()


@router.get("/maintenance-dashboard")
async def get_dashboard(
    company_id: int = Query(default=1, ge=1),
    db: Database = Depends(get_database),
) -> dict:
    return await service.dashboard_summary(db, company_id=company_id)
