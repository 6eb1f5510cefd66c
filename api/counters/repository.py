"""
Counter persistence.

The increment is done by the store (`counter = counter + 1`), never as a
read-modify-write in Python, so concurrent callers across processes cannot
observe the same value.
"""

from __future__ import annotations

from core.db import Database
from core.errors import QueryError

SEED_COUNTER_SQL = """
    INSERT INTO counters (entity_type, year, counter)
    VALUES ($1, $2, 0)
    ON CONFLICT (entity_type, year) DO NOTHING
"""

INCREMENT_COUNTER_SQL = """
    UPDATE counters
    SET counter = counter + 1
    WHERE entity_type = $1
      AND year = $2
    RETURNING counter
"""


async def increment_counter(db: Database, *, entity_type: str, year: int) -> int:
    """
    Seed the (entity_type, year) row if needed and return its next value.

    Both statements share one connection and one transaction. The UPDATE holds
    the row lock until commit, which serializes concurrent callers on the key.
    """
    async with db.transaction() as tx:
        await tx.execute(SEED_COUNTER_SQL, [entity_type, year])
        row = await tx.fetch_one(INCREMENT_COUNTER_SQL, [entity_type, year])

    if row is None:
        raise QueryError(
            "Counter row vanished between seed and increment.",
            sql=INCREMENT_COUNTER_SQL,
            params=[entity_type, year],
        )
    return int(row["counter"])

