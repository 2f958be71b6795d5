"""PostgreSQL pool for the event store.

The pool is opened by the lifespan when ``STORE_BACKEND=postgres``. Outside
the app (scripts, one-off maintenance) ``connection()`` falls back to a
direct connection built from the same settings.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import psycopg
from psycopg_pool import AsyncConnectionPool

from meetgrid.config import get_settings

logger = logging.getLogger(__name__)

_pool: AsyncConnectionPool | None = None


async def init_pool() -> None:
    """Open the shared pool and make sure the events table exists."""
    global _pool
    if _pool is not None:
        return
    pg = get_settings().postgres
    pool = AsyncConnectionPool(
        pg.get_dsn(),
        min_size=pg.pool_min_size,
        max_size=pg.pool_max_size,
        timeout=pg.pool_timeout,
        max_lifetime=pg.pool_max_lifetime,
        max_idle=pg.pool_max_idle,
        check=AsyncConnectionPool.check_connection,
        open=False,
    )
    await pool.open()
    _pool = pool
    logger.info("Event store pool open host=%s db=%s size=%d-%d", pg.host, pg.database, pg.pool_min_size, pg.pool_max_size)

    from meetgrid.db.schema import ensure_schema

    await ensure_schema()


async def close_pool() -> None:
    global _pool
    pool, _pool = _pool, None
    if pool is not None:
        await pool.close()
        logger.info("Event store pool closed")


@asynccontextmanager
async def connection(autocommit: bool = True) -> AsyncIterator[psycopg.AsyncConnection]:
    """Borrow a connection. With ``autocommit=False`` use ``conn.transaction()``."""
    if _pool is None:
        async with await psycopg.AsyncConnection.connect(
            get_settings().postgres.get_dsn(), autocommit=autocommit
        ) as conn:
            yield conn
        return
    async with _pool.connection() as conn:
        await conn.set_autocommit(autocommit)
        yield conn


def get_pool_stats() -> dict[str, object]:
    """Pool occupancy, reported by ``/health`` for the postgres backend."""
    if _pool is None:
        return {"status": "not_initialized"}
    stats = _pool.get_stats()
    return {
        "status": "active",
        "size": stats.get("pool_size", 0),
        "available": stats.get("pool_available", 0),
        "waiting": stats.get("requests_waiting", 0),
    }
