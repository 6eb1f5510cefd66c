"""
Schema for the tables this service owns.

Applied at startup when DB_APPLY_SCHEMA=true. Safe to run repeatedly
(everything uses IF NOT EXISTS).
"""

from __future__ import annotations

import logging

from .db import Database

logger = logging.getLogger(__name__)

SCHEMA_STATEMENTS: tuple[str, ...] = (
    # Sequence counters: one row per (entity type, year), never deleted.
    """
    CREATE TABLE IF NOT EXISTS counters (
        entity_type TEXT    NOT NULL,
        year        INTEGER NOT NULL,
        counter     INTEGER NOT NULL DEFAULT 0,
        PRIMARY KEY (entity_type, year)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS maintenance_types (
        id          SERIAL PRIMARY KEY,
        name        TEXT        NOT NULL,
        description TEXT,
        category    TEXT,
        is_active   BOOLEAN     NOT NULL DEFAULT true,
        created_at  TIMESTAMPTZ NOT NULL DEFAULT now(),
        updated_at  TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS maintenance_schedules (
        id                  SERIAL PRIMARY KEY,
        company_id          INTEGER     NOT NULL,
        equipment_id        INTEGER,
        maintenance_type_id INTEGER REFERENCES maintenance_types(id) ON DELETE SET NULL,
        status              TEXT        NOT NULL DEFAULT 'SCHEDULED'
            CHECK (status IN ('SCHEDULED', 'IN_PROGRESS', 'COMPLETED', 'OVERDUE', 'CANCELLED')),
        scheduled_date      DATE        NOT NULL,
        completed_at        TIMESTAMPTZ,
        created_at          TIMESTAMPTZ NOT NULL DEFAULT now(),
        updated_at          TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_schedules_company_status
        ON maintenance_schedules (company_id, status, scheduled_date)
    """,
)


async def apply_schema(db: Database) -> None:
    async with db.transaction() as tx:
        for statement in SCHEMA_STATEMENTS:
            await tx.execute(statement)
    logger.info("schema_applied statements=%s", len(SCHEMA_STATEMENTS))
