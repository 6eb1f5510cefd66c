"""
Sequence number endpoints.
"""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query

from core.db import Database
from core.dependencies import get_database

from . import service

router = APIRouter()


@router.post("/counters/{entity_type}/next")
async def allocate_number(
    entity_type: str,
    year: int | None = Query(default=None, ge=1900, le=9999),
    db: Database = Depends(get_database),
) -> dict:
    year = year if year is not None else date.today().year
    try:
        entity_type = service.normalize_entity_type(entity_type)
        number = await service.next_number(db, entity_type, year=year)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"entity_type": entity_type, "year": year, "number": number}
