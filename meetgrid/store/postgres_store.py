"""PostgreSQL event store: one JSONB row per event."""

import logging

import psycopg
from psycopg.types.json import Json

from meetgrid.db.core import connection
from meetgrid.errors import StorageUnavailableError
from meetgrid.models.event import EventWithAvailability
from meetgrid.store.base import EventStore, Mutation, parse_record

logger = logging.getLogger(__name__)


class PostgresEventStore(EventStore):
    name = "postgres"

    async def load(self, event_id: str) -> EventWithAvailability | None:
        try:
            async with connection() as conn:
                rows = await conn.execute("SELECT record FROM meetgrid_events WHERE id = %s", (event_id,))
                row = await rows.fetchone()
        except psycopg.Error as e:
            logger.exception("Failed to load event %s", event_id)
            raise StorageUnavailableError(detail="Failed to load event", event_id=event_id) from e
        if not row:
            return None
        return parse_record(row[0])

    async def save(self, event: EventWithAvailability) -> None:
        try:
            async with connection() as conn:
                await conn.execute(
                    """INSERT INTO meetgrid_events (id, record) VALUES (%s, %s)
                       ON CONFLICT (id) DO UPDATE SET record = EXCLUDED.record, updated_at = now()""",
                    (event.id, Json(event.to_record())),
                )
        except psycopg.Error as e:
            logger.exception("Failed to save event %s", event.id)
            raise StorageUnavailableError(detail="Failed to save event", event_id=event.id) from e

    async def create(self, event: EventWithAvailability) -> bool:
        try:
            async with connection() as conn:
                cur = await conn.execute(
                    "INSERT INTO meetgrid_events (id, record) VALUES (%s, %s) ON CONFLICT (id) DO NOTHING",
                    (event.id, Json(event.to_record())),
                )
                return cur.rowcount == 1
        except psycopg.Error as e:
            logger.exception("Failed to create event %s", event.id)
            raise StorageUnavailableError(detail="Failed to create event", event_id=event.id) from e

    async def update(self, event_id: str, mutate: Mutation) -> EventWithAvailability | None:
        try:
            async with connection() as conn:
                async with conn.transaction():
                    rows = await conn.execute(
                        "SELECT record FROM meetgrid_events WHERE id = %s FOR UPDATE", (event_id,)
                    )
                    row = await rows.fetchone()
                    if not row:
                        return None
                    updated = mutate(parse_record(row[0]))
                    await conn.execute(
                        "UPDATE meetgrid_events SET record = %s, updated_at = now() WHERE id = %s",
                        (Json(updated.to_record()), event_id),
                    )
                    return updated
        except psycopg.Error as e:
            logger.exception("Failed to update event %s", event_id)
            raise StorageUnavailableError(detail="Failed to update event", event_id=event_id) from e

    async def ping(self) -> bool:
        try:
            async with connection() as conn:
                await conn.execute("SELECT 1")
        except psycopg.Error:
            return False
        return True
