"""
Maintenance type persistence (raw SQL).
"""

from __future__ import annotations

from core.db import Database

_COLUMNS = "id, name, description, category, is_active, created_at, updated_at"


async def list_maintenance_types(db: Database, *, active_only: bool = False) -> list[dict]:
    return await db.query(
        f"""
        SELECT {_COLUMNS}
        FROM maintenance_types
        WHERE ($1 = false OR is_active = true)
        ORDER BY name ASC, id ASC
        """,
        [active_only],
    )


async def get_maintenance_type(db: Database, type_id: int) -> dict | None:
    return await db.fetch_one(
        f"""
        SELECT {_COLUMNS}
        FROM maintenance_types
        WHERE id = $1
        """,
        [type_id],
    )


async def create_maintenance_type(
    db: Database,
    *,
    name: str,
    description: str | None,
    category: str | None,
    is_active: bool = True,
) -> dict:
    result = await db.execute(
        f"""
        INSERT INTO maintenance_types (name, description, category, is_active)
        VALUES ($1, $2, $3, $4)
        RETURNING {_COLUMNS}
        """,
        [name, description, category, is_active],
    )
    if not result.rows:
        raise RuntimeError("Failed to create maintenance type.")
    return result.rows[0]


async def update_maintenance_type(
    db: Database,
    type_id: int,
    *,
    name: str,
    is_active: bool | None,
) -> dict | None:
    """
    Rename a type and optionally flip its active flag (None keeps it).
    Returns the updated row, or None when the id does not exist.
    """
    result = await db.execute(
        f"""
        UPDATE maintenance_types
        SET name = $1,
            is_active = COALESCE($2, is_active),
            updated_at = now()
        WHERE id = $3
        RETURNING {_COLUMNS}
        """,
        [name, is_active, type_id],
    )
    return result.rows[0] if result.rows else None


async def delete_maintenance_type(db: Database, type_id: int) -> bool:
    result = await db.execute("DELETE FROM maintenance_types WHERE id = $1", [type_id])
    return result.rows_affected > 0


DEFAULT_MAINTENANCE_TYPES: tuple[tuple[str, str, str], ...] = (
    ("Preventive", "Scheduled preventive maintenance", "preventive"),
    ("Corrective", "Corrective maintenance to repair a fault", "corrective"),
    ("Predictive", "Condition-based maintenance", "predictive"),
    ("Calibration", "Equipment calibration", "calibration"),
    ("Installation", "Installation of new equipment", "installation"),
    ("Uninstallation", "Removal of equipment", "uninstallation"),
    ("Consulting", "Technical consulting services", "consulting"),
)


async def reseed_defaults(db: Database) -> int:
    """
    Replace every maintenance type with the defaults, atomically.
    """
    async with db.transaction() as tx:
        await tx.execute("TRUNCATE TABLE maintenance_types RESTART IDENTITY CASCADE")
        for name, description, category in DEFAULT_MAINTENANCE_TYPES:
            await tx.execute(
                """
                INSERT INTO maintenance_types (name, description, category)
                VALUES ($1, $2, $3)
                """,
                [name, description, category],
            )
    return len(DEFAULT_MAINTENANCE_TYPES)
