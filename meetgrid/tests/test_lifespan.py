"""Tests for lifespan management."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest


def _settings(backend: str, data_dir: str = "data"):
    settings = MagicMock()
    settings.store.backend = backend
    settings.store.data_dir = data_dir
    settings.store.file_name = "events.json"
    settings.redis.key_prefix = "meetgrid:event:"
    settings.redis.max_update_retries = 3
    return settings


class TestLifespanResources:
    """Test LifespanResources dataclass."""

    def test_lifespan_resources_defaults(self):
        from meetgrid.lifespan import LifespanResources

        resources = LifespanResources()
        assert resources.event_store is None
        assert resources.db_enabled is False


class TestInitRedis:
    """Test init_redis function."""

    @pytest.mark.asyncio
    async def test_init_redis_creates_client(self):
        from meetgrid.lifespan import init_redis

        mock_redis_class = MagicMock()
        mock_client = MagicMock(spec=["get", "set"])
        mock_redis_class.return_value = mock_client

        with patch("meetgrid.lifespan.redis.Redis", mock_redis_class):
            with patch("meetgrid.lifespan.get_settings") as mock_settings:
                mock_settings.return_value.redis.host = "localhost"
                mock_settings.return_value.redis.port = 6379
                mock_settings.return_value.redis.password = ""
                mock_settings.return_value.redis.max_connections = 10
                mock_settings.return_value.redis.pool_timeout_sec = 5.0
                mock_settings.return_value.debug.redis = False

                result = await init_redis()

                assert result is mock_client
                mock_redis_class.assert_called_once()


class TestInitStore:
    """Test backend selection."""

    @pytest.mark.asyncio
    async def test_file_backend(self, tmp_path):
        from meetgrid.lifespan import init_store
        from meetgrid.store.file_store import FileEventStore

        with patch("meetgrid.lifespan.get_settings", return_value=_settings("file", str(tmp_path))):
            resources = await init_store()

        assert isinstance(resources.event_store, FileEventStore)
        assert resources.event_store.path == tmp_path / "events.json"
        assert resources.db_enabled is False

    @pytest.mark.asyncio
    async def test_redis_backend(self):
        from meetgrid.lifespan import init_store
        from meetgrid.store.redis_store import RedisEventStore

        client = MagicMock()
        with patch("meetgrid.lifespan.get_settings", return_value=_settings("redis")):
            with patch("meetgrid.lifespan.init_redis", new_callable=AsyncMock, return_value=client):
                resources = await init_store()

        assert isinstance(resources.event_store, RedisEventStore)
        assert resources.event_store.redis_client is client
        assert resources.event_store.max_update_retries == 3

    @pytest.mark.asyncio
    async def test_postgres_backend(self):
        from meetgrid.lifespan import init_store
        from meetgrid.store.postgres_store import PostgresEventStore

        with patch("meetgrid.lifespan.get_settings", return_value=_settings("postgres")):
            with patch("meetgrid.lifespan.db_core.init_pool", new_callable=AsyncMock) as init_pool:
                resources = await init_store()

        init_pool.assert_awaited_once()
        assert isinstance(resources.event_store, PostgresEventStore)
        assert resources.db_enabled is True


class TestSetupAndCleanup:
    @pytest.mark.asyncio
    async def test_setup_publishes_store(self):
        from meetgrid import state
        from meetgrid.lifespan import LifespanResources, setup_resources

        store = MagicMock()
        with patch("meetgrid.lifespan.init_store", new_callable=AsyncMock, return_value=LifespanResources(event_store=store)):
            resources = await setup_resources()

        assert state.event_store is store
        assert resources.event_store is store
        state.event_store = None

    @pytest.mark.asyncio
    async def test_cleanup_closes_store_and_pool(self):
        from meetgrid import state
        from meetgrid.lifespan import LifespanResources, cleanup_resources

        store = MagicMock()
        store.close = AsyncMock()
        state.event_store = store

        with patch("meetgrid.lifespan.db_core.close_pool", new_callable=AsyncMock) as close_pool:
            await cleanup_resources(LifespanResources(event_store=store, db_enabled=True))

        store.close.assert_awaited_once()
        close_pool.assert_awaited_once()
        assert state.event_store is None
