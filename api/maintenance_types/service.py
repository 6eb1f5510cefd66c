"""
Maintenance type business rules.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, status

from core.db import Database

from . import repository, schemas

logger = logging.getLogger(__name__)


def _to_response(row: dict) -> schemas.MaintenanceTypeResponse:
    return schemas.MaintenanceTypeResponse(
        id=int(row["id"]),
        name=str(row["name"]),
        description=row.get("description"),
        category=row.get("category"),
        is_active=bool(row["is_active"]),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


async def list_types(db: Database, *, active_only: bool = False) -> list[schemas.MaintenanceTypeResponse]:
    rows = await repository.list_maintenance_types(db, active_only=active_only)
    return [_to_response(row) for row in rows]


async def get_type(db: Database, type_id: int) -> schemas.MaintenanceTypeResponse:
    row = await repository.get_maintenance_type(db, type_id)
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Maintenance type not found.")
    return _to_response(row)


async def create_type(db: Database, payload: schemas.MaintenanceTypeCreate) -> schemas.MaintenanceTypeResponse:
    name = payload.name.strip()
    if not name:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Name is required.")

    row = await repository.create_maintenance_type(
        db,
        name=name,
        description=(payload.description or "").strip() or None,
        category=(payload.category or "").strip().lower() or None,
        is_active=payload.is_active,
    )
    logger.info("maintenance_type_created id=%s name=%s", row["id"], name)
    return _to_response(row)


async def update_type(db: Database, type_id: int, payload: schemas.MaintenanceTypeUpdate) -> dict:
    name = (payload.name or "").strip()
    if not name:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="ID and name are required.")

    updated = await repository.update_maintenance_type(db, type_id, name=name, is_active=payload.is_active)
    if updated is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Maintenance type not found.")

    logger.info("maintenance_type_updated id=%s is_active=%s", type_id, updated["is_active"])
    return {
        "id": int(updated["id"]),
        "name": str(updated["name"]),
        "isActive": bool(updated["is_active"]),
        "message": "Maintenance type updated.",
    }


async def delete_type(db: Database, type_id: int) -> dict:
    if not await repository.delete_maintenance_type(db, type_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Maintenance type not found.")
    logger.info("maintenance_type_deleted id=%s", type_id)
    return {"ok": True, "id": type_id}
