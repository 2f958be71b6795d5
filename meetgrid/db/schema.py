"""Schema for the PostgreSQL event store.

Each event is one JSONB document, the same shape the file and Redis stores
keep, so records move between backends unchanged.
"""

import logging

from meetgrid.db.core import connection

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS meetgrid_events (
    id TEXT PRIMARY KEY,
    record JSONB NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
);
"""


async def ensure_schema() -> None:
    """Create the events table if it does not exist. Idempotent."""
    async with connection() as conn:
        await conn.execute(SCHEMA_SQL)
    logger.info("Event schema ensured")
