"""
Pydantic schemas for maintenance type endpoints.

The frontend sends and expects `isActive`; snake_case is accepted too.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class MaintenanceTypeCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    category: str | None = Field(default=None, max_length=100)
    is_active: bool = Field(default=True, alias="isActive")


class MaintenanceTypeUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Blank names are rejected by the service with a 400, not by validation.
    name: str | None = Field(default=None, max_length=200)
    # Omitted means "leave as stored".
    is_active: bool | None = Field(default=None, alias="isActive")


class MaintenanceTypeResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    name: str
    description: str | None = None
    category: str | None = None
    is_active: bool = Field(serialization_alias="isActive")
    created_at: datetime | None = None
    updated_at: datetime | None = None
