from typing import Any, Dict

from fastapi import APIRouter

from meetgrid.db.core import get_pool_stats
from meetgrid.dependencies import OptionalStore

router = APIRouter()


@router.get("/health")
async def health(store: OptionalStore) -> Dict[str, Any]:
    if store is None:
        return {"status": "ok", "store": "disconnected"}
    body: Dict[str, Any] = {
        "status": "ok",
        "store": "healthy" if await store.ping() else "unhealthy",
        "backend": store.name,
    }
    if store.name == "postgres":
        body["pool"] = get_pool_stats()
    return body
