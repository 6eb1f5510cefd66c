"""
Reset the maintenance type lookup table to the default set.

Usage:
    python -m ops.seed_maintenance_types
"""

from __future__ import annotations

import asyncio
import logging
import sys

from core.db import Database
from core.errors import DatabaseError
from core.location_guard import verify_data_location
from core.pool import ConnectionPool
from core.settings import DatabaseSettings
from maintenance_types import repository

logger = logging.getLogger(__name__)


async def reseed(db: Database) -> list[dict]:
    inserted = await repository.reseed_defaults(db)
    logger.info("maintenance_types_reseeded inserted=%s", inserted)

    rows = await repository.list_maintenance_types(db, active_only=True)
    for row in rows:
        logger.info(
            "maintenance_type id=%s name=%s category=%s description=%s",
            row["id"],
            row["name"],
            row["category"],
            row["description"],
        )
    return rows


async def _main() -> int:
    settings = DatabaseSettings.from_env()
    verify_data_location(settings.data_path)
    pool = ConnectionPool(settings)
    try:
        rows = await reseed(Database(pool))
    except DatabaseError:
        logger.exception("maintenance_types_reseed_failed")
        return 1
    finally:
        await pool.close()
    logger.info("maintenance_types_active count=%s", len(rows))
    return 0


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    return asyncio.run(_main())


if __name__ == "__main__":
    sys.exit(main())
