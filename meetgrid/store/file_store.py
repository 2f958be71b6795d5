"""Flat-file event store: every event in one JSON object keyed by id."""

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from meetgrid.errors import StorageUnavailableError
from meetgrid.models.event import EventWithAvailability
from meetgrid.store.base import EventStore, Mutation, parse_record

logger = logging.getLogger(__name__)


class FileEventStore(EventStore):
    name = "file"

    def __init__(self, data_dir: str | Path, file_name: str = "events.json") -> None:
        self.path = Path(data_dir) / file_name
        # One lock for the whole file serializes every read-modify-write.
        self._lock = asyncio.Lock()

    def _read_all(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        raw = self.path.read_text(encoding="utf-8")
        if not raw.strip():
            return {}
        return json.loads(raw)

    def _write_all(self, events: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".events-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(events, f, indent=2)
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    async def _read(self) -> dict[str, Any]:
        try:
            return await asyncio.to_thread(self._read_all)
        except (OSError, json.JSONDecodeError) as e:
            logger.exception("Failed to read event file %s", self.path)
            raise StorageUnavailableError(detail="Failed to read event storage") from e

    async def _write(self, events: dict[str, Any]) -> None:
        try:
            await asyncio.to_thread(self._write_all, events)
        except OSError as e:
            logger.exception("Failed to write event file %s", self.path)
            raise StorageUnavailableError(detail="Failed to write event storage") from e

    async def load(self, event_id: str) -> EventWithAvailability | None:
        async with self._lock:
            events = await self._read()
        raw = events.get(event_id)
        if raw is None:
            return None
        return parse_record(raw)

    async def save(self, event: EventWithAvailability) -> None:
        async with self._lock:
            events = await self._read()
            events[event.id] = event.to_record()
            await self._write(events)

    async def create(self, event: EventWithAvailability) -> bool:
        async with self._lock:
            events = await self._read()
            if event.id in events:
                return False
            events[event.id] = event.to_record()
            await self._write(events)
        return True

    async def update(self, event_id: str, mutate: Mutation) -> EventWithAvailability | None:
        async with self._lock:
            events = await self._read()
            raw = events.get(event_id)
            if raw is None:
                return None
            updated = mutate(parse_record(raw))
            events[event_id] = updated.to_record()
            await self._write(events)
        return updated

    async def ping(self) -> bool:
        try:
            await self._read()
        except StorageUnavailableError:
            return False
        return True
