"""
Sequential, human-readable numbers per entity type and year.

Examples for 2025:
- service_orders -> OS-001-2025
- equipment      -> EQ-01/2025
- companies      -> EMP-01/2025
- anything else  -> 01/2025
"""

from __future__ import annotations

import logging
from datetime import date

from core.db import Database

from . import repository

logger = logging.getLogger(__name__)

NUMBER_FORMATS: dict[str, str] = {
    "service_orders": "OS-{counter:03d}-{year}",
    "equipment": "EQ-{counter:02d}/{year}",
    "companies": "EMP-{counter:02d}/{year}",
}
DEFAULT_NUMBER_FORMAT = "{counter:02d}/{year}"


def format_number(entity_type: str, counter: int, year: int) -> str:
    template = NUMBER_FORMATS.get(entity_type, DEFAULT_NUMBER_FORMAT)
    return template.format(counter=counter, year=year)


def normalize_entity_type(entity_type: str) -> str:
    value = (entity_type or "").strip()
    if not value:
        raise ValueError("Entity type is required.")
    return value


async def next_number(db: Database, entity_type: str, *, year: int | None = None) -> str:
    """
    Allocate the next number for `entity_type` in `year` (default: current year).

    Every call goes to the store; nothing is cached in process memory.
    """
    entity_type = normalize_entity_type(entity_type)
    year = year if year is not None else date.today().year

    counter = await repository.increment_counter(db, entity_type=entity_type, year=year)
    number = format_number(entity_type, counter, year)
    logger.info("number_allocated entity_type=%s year=%s number=%s", entity_type, year, number)
    return number
