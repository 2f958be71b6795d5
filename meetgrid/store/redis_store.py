"""Redis-backed event store: one JSON string per event key."""

import json
import logging

import redis.asyncio as redis
from redis.exceptions import RedisError, WatchError

from meetgrid.errors import StorageUnavailableError
from meetgrid.models.event import EventWithAvailability
from meetgrid.store.base import EventStore, Mutation, parse_record

logger = logging.getLogger(__name__)


class RedisEventStore(EventStore):
    name = "redis"

    def __init__(
        self,
        redis_client: redis.Redis,
        key_prefix: str = "meetgrid:event:",
        max_update_retries: int = 5,
    ) -> None:
        self.redis_client = redis_client
        self.key_prefix = key_prefix
        self.max_update_retries = max_update_retries

    def key(self, event_id: str) -> str:
        return f"{self.key_prefix}{event_id}"

    async def load(self, event_id: str) -> EventWithAvailability | None:
        try:
            raw = await self.redis_client.get(self.key(event_id))
        except RedisError as e:
            logger.exception("Failed to load event %s", event_id)
            raise StorageUnavailableError(detail="Failed to load event", event_id=event_id) from e
        logger.debug("GET %s hit=%s", self.key(event_id), raw is not None)
        if raw is None:
            return None
        return parse_record(json.loads(raw))

    async def save(self, event: EventWithAvailability) -> None:
        try:
            await self.redis_client.set(self.key(event.id), json.dumps(event.to_record()))
        except RedisError as e:
            logger.exception("Failed to save event %s", event.id)
            raise StorageUnavailableError(detail="Failed to save event", event_id=event.id) from e

    async def create(self, event: EventWithAvailability) -> bool:
        try:
            created = await self.redis_client.set(
                self.key(event.id), json.dumps(event.to_record()), nx=True
            )
        except RedisError as e:
            logger.exception("Failed to create event %s", event.id)
            raise StorageUnavailableError(detail="Failed to create event", event_id=event.id) from e
        logger.debug("SET NX %s created=%s", self.key(event.id), bool(created))
        return bool(created)

    async def update(self, event_id: str, mutate: Mutation) -> EventWithAvailability | None:
        key = self.key(event_id)
        for attempt in range(1, self.max_update_retries + 1):
            try:
                async with self.redis_client.pipeline(transaction=True) as pipe:
                    await pipe.watch(key)
                    raw = await pipe.get(key)
                    if raw is None:
                        return None
                    updated = mutate(parse_record(json.loads(raw)))
                    pipe.multi()
                    pipe.set(key, json.dumps(updated.to_record()))
                    await pipe.execute()
                    logger.debug("MULTI/EXEC %s committed on attempt %d", key, attempt)
                    return updated
            except WatchError:
                logger.info("Concurrent update on event %s, retrying (attempt %d)", event_id, attempt)
                continue
            except RedisError as e:
                logger.exception("Failed to update event %s", event_id)
                raise StorageUnavailableError(detail="Failed to update event", event_id=event_id) from e
        logger.warning("Giving up on event %s after %d conflicting updates", event_id, self.max_update_retries)
        raise StorageUnavailableError(
            detail="Too many concurrent updates", event_id=event_id, attempts=self.max_update_retries
        )

    async def ping(self) -> bool:
        try:
            await self.redis_client.ping()
        except RedisError:
            return False
        return True

    async def close(self) -> None:
        aclose = getattr(self.redis_client, "aclose", None)
        if callable(aclose):
            await aclose()
        else:
            close = getattr(self.redis_client, "close", None)
            if callable(close):
                close()
