"""Event store interface and the record normalization every backend shares.

The store is picked once at startup (see ``meetgrid.lifespan``) and injected
into controllers. Core code never references a concrete backend.
"""

import abc
import logging
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError

from meetgrid.core.merge import normalize_marks
from meetgrid.errors import StorageUnavailableError
from meetgrid.models.event import EventWithAvailability

logger = logging.getLogger(__name__)

Mutation = Callable[[EventWithAvailability], EventWithAvailability]

LEGACY_IF_NEEDED_FIELD = "slotsPrefer"


def normalize_record(raw: dict[str, Any]) -> dict[str, Any]:
    """Bring a stored record up to the current schema.

    Older records kept if-needed marks under ``slotsPrefer``. The field is
    folded into ``slotsIfNeeded`` and both mark lists are re-normalized so a
    slot is never great and if-needed at once.
    """
    record = dict(raw)
    availability = []
    for entry in record.get("availability") or []:
        entry = dict(entry)
        legacy = entry.pop(LEGACY_IF_NEEDED_FIELD, None) or []
        current = entry.get("slotsIfNeeded", entry.get("slots_if_needed")) or []
        entry.pop("slots_if_needed", None)
        great, if_needed = normalize_marks(entry.get("slots") or [], [*current, *legacy])
        entry["slots"] = great
        entry["slotsIfNeeded"] = if_needed
        availability.append(entry)
    record["availability"] = availability
    return record


def parse_record(raw: dict[str, Any]) -> EventWithAvailability:
    try:
        return EventWithAvailability.model_validate(normalize_record(raw))
    except ValidationError as e:
        logger.exception("Stored event record is malformed id=%s", raw.get("id"))
        raise StorageUnavailableError(
            detail="Stored event record is malformed", event_id=raw.get("id"), retryable=False
        ) from e


class EventStore(abc.ABC):
    """Load/save interface over whole event records.

    ``load`` and ``update`` return ``None`` for unknown ids. Backend
    failures raise ``StorageUnavailableError``; they are never turned into
    empty data.
    """

    name: str = "base"

    @abc.abstractmethod
    async def load(self, event_id: str) -> EventWithAvailability | None:
        ...

    @abc.abstractmethod
    async def save(self, event: EventWithAvailability) -> None:
        ...

    @abc.abstractmethod
    async def create(self, event: EventWithAvailability) -> bool:
        """Store a new event. Returns False when the id is already taken."""
        ...

    @abc.abstractmethod
    async def update(self, event_id: str, mutate: Mutation) -> EventWithAvailability | None:
        """Read-modify-write one event without losing concurrent updates.

        ``mutate`` may run more than once on backends that retry, so it must
        be free of side effects.
        """
        ...

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None
