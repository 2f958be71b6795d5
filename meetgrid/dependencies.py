"""Dependency injection for FastAPI endpoints.

Controllers get the event store through ``get_store`` instead of reading
global state, so the backend is chosen once at startup and swapped in tests.

Usage in controllers:
    from meetgrid.dependencies import Store

    @router.get("/events/{event_id}")
    async def get_event(event_id: str, store: Store):
        return await store.load(event_id)
"""

from typing import Annotated

from fastapi import Depends

from meetgrid import state
from meetgrid.errors import ServiceUnavailableError
from meetgrid.store.base import EventStore


def get_store() -> EventStore:
    """Get the configured event store.

    Raises:
        ServiceUnavailableError: If no store has been initialized.

    Returns:
        The event store instance.
    """
    if state.event_store is None:
        raise ServiceUnavailableError(detail="Event store not initialized")
    return state.event_store


def get_optional_store() -> EventStore | None:
    """Get the event store if available, or None."""
    return state.event_store


Store = Annotated[EventStore, Depends(get_store)]
OptionalStore = Annotated[EventStore | None, Depends(get_optional_store)]
