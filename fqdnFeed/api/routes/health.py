"""Health and dependency status endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from fqdnFeed.api.models import ok
from fqdnFeed.api.utils.deps import store_dep
from fqdnFeed.logging_config import get_logger
from fqdnFeed.store.base import BackingStore

logger = get_logger("api")
router = APIRouter(prefix="/health", tags=["health"])


async def _check_store(store: BackingStore) -> dict:
    """Check backing store connectivity."""
    try:
        if await store.ping():
            return {"status": "healthy", "backend": store.backend, "message": "Connected"}
        return {"status": "degraded", "backend": store.backend, "message": "Unexpected response"}
    except Exception as exc:
        return {"status": "unhealthy", "backend": store.backend, "message": str(exc)[:100]}


@router.get("")
async def health(store: BackingStore = Depends(store_dep)):
    store_check = await _check_store(store)
    logger.info(
        "Health check performed",
        extra={"state": store_check["status"], "backend": store.backend, "outcome": "success"},
    )
    return ok({"status": store_check["status"], "checks": {"store": store_check}})
