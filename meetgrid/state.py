from typing import Optional

from meetgrid.store.base import EventStore

# Global runtime state initialized in main.lifespan
event_store: Optional[EventStore] = None
