"""Application startup and shutdown.

The event store backend is chosen here, once, from ``STORE_BACKEND`` and
published through ``meetgrid.state`` for the dependency layer.
"""

import logging
from dataclasses import dataclass

import redis.asyncio as redis
from redis.asyncio import BlockingConnectionPool as RedisConnectionPool

from meetgrid import state
from meetgrid.config import get_settings
from meetgrid.db import core as db_core
from meetgrid.store.base import EventStore
from meetgrid.store.file_store import FileEventStore
from meetgrid.store.postgres_store import PostgresEventStore
from meetgrid.store.redis_store import RedisEventStore

logger = logging.getLogger(__name__)


@dataclass
class LifespanResources:
    """Container for resources initialized during lifespan."""

    event_store: EventStore | None = None
    db_enabled: bool = False


async def init_redis() -> redis.Redis:
    """Client for the redis event store, backed by a blocking pool."""
    settings = get_settings()
    pool = RedisConnectionPool(
        host=settings.redis.host,
        port=settings.redis.port,
        password=settings.redis.password if settings.redis.password else None,
        max_connections=settings.redis.max_connections,
        timeout=settings.redis.pool_timeout_sec,
        health_check_interval=settings.redis.health_check_interval,
        socket_timeout=settings.redis.socket_timeout,
        socket_connect_timeout=settings.redis.socket_connect_timeout,
        retry_on_timeout=settings.redis.retry_on_timeout,
        decode_responses=True,
    )

    client = redis.Redis(connection_pool=pool)
    if settings.debug.redis:
        logging.getLogger("meetgrid.store.redis_store").setLevel(logging.DEBUG)

    return client


async def init_store() -> LifespanResources:
    """Build the store named by STORE_BACKEND; ``file`` is the default."""
    settings = get_settings()
    backend = settings.store.backend
    resources = LifespanResources()

    if backend == "redis":
        resources.event_store = RedisEventStore(
            await init_redis(),
            key_prefix=settings.redis.key_prefix,
            max_update_retries=settings.redis.max_update_retries,
        )
    elif backend == "postgres":
        await db_core.init_pool()
        resources.db_enabled = True
        resources.event_store = PostgresEventStore()
    else:
        resources.event_store = FileEventStore(settings.store.data_dir, settings.store.file_name)

    logger.info("Event store initialized backend=%s", backend)
    return resources


async def setup_resources() -> LifespanResources:
    """Set up all shared resources and publish them in ``meetgrid.state``."""
    resources = await init_store()
    state.event_store = resources.event_store
    return resources


async def cleanup_resources(resources: LifespanResources) -> None:
    """Close the store and any pool it borrowed from. Never raises."""
    if resources.event_store is not None:
        try:
            await resources.event_store.close()
        except Exception:
            logger.warning("Failed to close event store", exc_info=True)

    if resources.db_enabled:
        try:
            await db_core.close_pool()
        except Exception:
            logger.warning("Failed to close database pool", exc_info=True)

    state.event_store = None
