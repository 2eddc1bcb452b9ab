"""Health check endpoint for the Intake-Hub API."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.concurrency import run_in_threadpool

from intake_hub import __version__
from intake_hub.api.dependencies import HubDep, StoreDep
from intake_hub.domain.ports import RecordStorePort, StorageError
from intake_hub.models.health import HealthResponse, StoreHealth

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["health"])


def check_store_health(store: RecordStorePort) -> StoreHealth:
    """Check record store connectivity and size."""
    if not store.check_health():
        return StoreHealth(status="disconnected", backend=store.backend_name)
    try:
        record_count = store.count()
    except StorageError as e:
        logger.warning(f"Record count failed during health check: {e.message}")
        return StoreHealth(status="disconnected", backend=store.backend_name)
    return StoreHealth(status="connected", backend=store.backend_name, record_count=record_count)


@router.get("/health", response_model=HealthResponse)
async def health_check(store: StoreDep, hub: HubDep) -> HealthResponse:
    """Report store connectivity and the number of open real-time connections."""
    store_health = await run_in_threadpool(check_store_health, store)
    return HealthResponse(
        status="healthy" if store_health.status == "connected" else "unhealthy",
        timestamp=datetime.now(timezone.utc),
        version=__version__,
        store=store_health,
        connections=await hub.connection_count(),
    )
