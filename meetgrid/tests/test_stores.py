import asyncio
import json
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch

import fakeredis.aioredis as fakeredis
import psycopg
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from meetgrid.core.merge import merge_availability
from meetgrid.db.core import get_pool_stats
from meetgrid.errors import StorageUnavailableError
from meetgrid.models.event import EventWithAvailability
from meetgrid.store.base import normalize_record
from meetgrid.store.file_store import FileEventStore
from meetgrid.store.postgres_store import PostgresEventStore
from meetgrid.store.redis_store import RedisEventStore


def _record(event_id: str = "evt123", **overrides) -> dict:
    record = {
        "id": event_id,
        "name": "Planning",
        "dates": ["2025-03-15"],
        "startHour": 9,
        "endHour": 11,
        "createdAt": "2025-03-01T00:00:00+00:00",
        "availability": [],
    }
    record.update(overrides)
    return record


def _event(event_id: str = "evt123") -> EventWithAvailability:
    return EventWithAvailability.model_validate(_record(event_id))


def _submit(name: str, slot: str):
    return lambda e: merge_availability(e, name, [slot])


class TestNormalizeRecord:
    def test_legacy_field_folded_into_if_needed(self):
        raw = _record(availability=[{"participantName": "Old", "slots": ["a"], "slotsPrefer": ["b"]}])
        entry = normalize_record(raw)["availability"][0]
        assert "slotsPrefer" not in entry
        assert entry["slotsIfNeeded"] == ["b"]

    def test_overlapping_marks_resolved_to_great(self):
        raw = _record(availability=[{"participantName": "X", "slots": ["a"], "slotsIfNeeded": ["a", "b"]}])
        entry = normalize_record(raw)["availability"][0]
        assert entry["slots"] == ["a"]
        assert entry["slotsIfNeeded"] == ["b"]

    def test_does_not_mutate_input(self):
        raw = _record(availability=[{"participantName": "Old", "slots": [], "slotsPrefer": ["b"]}])
        normalize_record(raw)
        assert raw["availability"][0]["slotsPrefer"] == ["b"]


class TestFileEventStore:
    @pytest.mark.asyncio
    async def test_create_and_load(self, tmp_path):
        store = FileEventStore(tmp_path)
        assert await store.create(_event()) is True
        loaded = await store.load("evt123")
        assert loaded == _event()

    @pytest.mark.asyncio
    async def test_create_refuses_existing_id(self, tmp_path):
        store = FileEventStore(tmp_path)
        await store.create(_event())
        assert await store.create(_event()) is False

    @pytest.mark.asyncio
    async def test_load_unknown_returns_none(self, tmp_path):
        store = FileEventStore(tmp_path)
        assert await store.load("missing") is None
        assert await store.update("missing", _submit("A", "2025-03-15T09:00")) is None

    @pytest.mark.asyncio
    async def test_record_written_in_camel_case(self, tmp_path):
        store = FileEventStore(tmp_path)
        await store.save(merge_availability(_event(), "Alice", ["2025-03-15T09:00"]))
        data = json.loads((tmp_path / "events.json").read_text())
        entry = data["evt123"]["availability"][0]
        assert entry["participantName"] == "Alice"
        assert entry["slotsIfNeeded"] == []
        assert data["evt123"]["startHour"] == 9

    @pytest.mark.asyncio
    async def test_legacy_record_normalized_on_load(self, tmp_path):
        raw = _record(availability=[{"participantName": "Old", "slots": ["2025-03-15T09:00"], "slotsPrefer": ["2025-03-15T09:30"]}])
        (tmp_path / "events.json").write_text(json.dumps({"evt123": raw}))
        loaded = await FileEventStore(tmp_path).load("evt123")
        assert loaded.availability[0].slots_if_needed == ["2025-03-15T09:30"]

    @pytest.mark.asyncio
    async def test_concurrent_updates_keep_every_participant(self, tmp_path):
        store = FileEventStore(tmp_path)
        await store.create(_event())
        names = ["Alice", "Bob", "Carol", "Dan"]
        await asyncio.gather(*(store.update("evt123", _submit(n, "2025-03-15T09:00")) for n in names))
        loaded = await store.load("evt123")
        assert sorted(loaded.participant_names) == names

    @pytest.mark.asyncio
    async def test_corrupt_file_is_storage_error(self, tmp_path):
        (tmp_path / "events.json").write_text("{not json")
        store = FileEventStore(tmp_path)
        with pytest.raises(StorageUnavailableError) as exc_info:
            await store.load("evt123")
        assert exc_info.value.context["retryable"] is True
        assert await store.ping() is False


class TestRedisEventStore:
    @pytest.fixture
    def store(self):
        return RedisEventStore(fakeredis.FakeRedis(decode_responses=True), max_update_retries=20)

    @pytest.mark.asyncio
    async def test_create_and_load(self, store):
        assert await store.create(_event()) is True
        assert await store.create(_event()) is False
        assert await store.load("evt123") == _event()
        assert await store.load("missing") is None

    @pytest.mark.asyncio
    async def test_update_and_save(self, store):
        await store.create(_event())
        updated = await store.update("evt123", _submit("Alice", "2025-03-15T09:00"))
        assert updated.participant_names == ["Alice"]
        assert (await store.load("evt123")).participant_names == ["Alice"]

        await store.save(merge_availability(updated, "Alice", ["2025-03-15T10:00"]))
        assert (await store.load("evt123")).availability[0].slots == ["2025-03-15T10:00"]

    @pytest.mark.asyncio
    async def test_update_unknown_returns_none(self, store):
        assert await store.update("missing", _submit("A", "2025-03-15T09:00")) is None

    @pytest.mark.asyncio
    async def test_concurrent_updates_keep_every_participant(self, store):
        await store.create(_event())
        names = ["Alice", "Bob", "Carol"]
        await asyncio.gather(*(store.update("evt123", _submit(n, "2025-03-15T09:30")) for n in names))
        loaded = await store.load("evt123")
        assert sorted(loaded.participant_names) == names

    @pytest.mark.asyncio
    async def test_legacy_record_normalized_on_load(self, store):
        raw = _record(availability=[{"participantName": "Old", "slots": [], "slotsPrefer": ["2025-03-15T09:30"]}])
        await store.redis_client.set(store.key("evt123"), json.dumps(raw))
        loaded = await store.load("evt123")
        assert loaded.availability[0].slots_if_needed == ["2025-03-15T09:30"]

    @pytest.mark.asyncio
    async def test_redis_failure_is_storage_error(self):
        client = MagicMock()
        client.get = AsyncMock(side_effect=RedisConnectionError("down"))
        client.ping = AsyncMock(side_effect=RedisConnectionError("down"))
        store = RedisEventStore(client)
        with pytest.raises(StorageUnavailableError):
            await store.load("evt123")
        assert await store.ping() is False

    @pytest.mark.asyncio
    async def test_ping(self, store):
        assert await store.ping() is True


class _FakeCursor:
    def __init__(self, row=None, rowcount=1):
        self._row = row
        self.rowcount = rowcount

    async def fetchone(self):
        return self._row


def _fake_connection(conn):
    @asynccontextmanager
    async def connection(autocommit: bool = True):
        yield conn

    return connection


class TestPostgresEventStore:
    @pytest.mark.asyncio
    async def test_load_parses_jsonb_record(self):
        conn = MagicMock()
        conn.execute = AsyncMock(return_value=_FakeCursor(row=(_record(),)))
        with patch("meetgrid.store.postgres_store.connection", _fake_connection(conn)):
            loaded = await PostgresEventStore().load("evt123")
        assert loaded == _event()

    @pytest.mark.asyncio
    async def test_load_unknown_returns_none(self):
        conn = MagicMock()
        conn.execute = AsyncMock(return_value=_FakeCursor(row=None))
        with patch("meetgrid.store.postgres_store.connection", _fake_connection(conn)):
            assert await PostgresEventStore().load("missing") is None

    @pytest.mark.asyncio
    async def test_create_reports_conflict(self):
        conn = MagicMock()
        conn.execute = AsyncMock(return_value=_FakeCursor(rowcount=0))
        with patch("meetgrid.store.postgres_store.connection", _fake_connection(conn)):
            assert await PostgresEventStore().create(_event()) is False

    @pytest.mark.asyncio
    async def test_database_failure_is_storage_error(self):
        conn = MagicMock()
        conn.execute = AsyncMock(side_effect=psycopg.OperationalError("connection refused"))
        with patch("meetgrid.store.postgres_store.connection", _fake_connection(conn)):
            with pytest.raises(StorageUnavailableError):
                await PostgresEventStore().load("evt123")


class TestPoolStats:
    def test_not_initialized(self):
        assert get_pool_stats() == {"status": "not_initialized"}
