"""
Maintenance type API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from core.db import Database
from core.dependencies import get_database

from . import schemas, service

router = APIRouter()


@router.get("/maintenance-types")
async def list_maintenance_types(
    active_only: bool = Query(default=False),
    db: Database = Depends(get_database),
) -> dict:
    items = await service.list_types(db, active_only=active_only)
    return {
        "maintenance_types": [item.model_dump(by_alias=True) for item in items],
        "count": len(items),
    }


@router.get("/maintenance-types/{type_id}")
async def get_maintenance_type(
    type_id: int,
    db: Database = Depends(get_database),
) -> dict:
    item = await service.get_type(db, type_id)
    return item.model_dump(by_alias=True)


@router.post("/maintenance-types", status_code=status.HTTP_201_CREATED)
async def create_maintenance_type(
    request: schemas.MaintenanceTypeCreate,
    db: Database = Depends(get_database),
) -> dict:
    item = await service.create_type(db, request)
    return item.model_dump(by_alias=True)


@router.put("/maintenance-types/{type_id}")
async def update_maintenance_type(
    type_id: int,
    request: schemas.MaintenanceTypeUpdate,
    db: Database = Depends(get_database),
) -> dict:
    return await service.update_type(db, type_id, request)


@router.delete("/maintenance-types/{type_id}")
async def delete_maintenance_type(
    type_id: int,
    db: Database = Depends(get_database),
) -> dict:
    return await service.delete_type(db, type_id)
