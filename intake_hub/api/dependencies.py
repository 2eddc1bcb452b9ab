"""Dependency injection for the Intake-Hub API.

The record store is built once from configuration and shared by every
request; tests swap it out through ``app.dependency_overrides``.
"""

import logging
from functools import lru_cache
from typing import Annotated, Optional

from fastapi import Depends

from intake_hub.adapters.storage import create_record_store
from intake_hub.domain.ports import RecordStorePort
from intake_hub.infrastructure.config_manager import get_store_config
from intake_hub.infrastructure.error_log import ErrorLogWriter
from intake_hub.services.broadcast_hub import BroadcastHub, get_broadcast_hub
from intake_hub.services.intake_service import IntakeService

logger = logging.getLogger(__name__)


@lru_cache()
def get_record_store() -> RecordStorePort:
    """Get the configured record store (cached, initialized on first use)."""
    store_config = get_store_config()
    logger.info(f"Creating '{store_config.backend}' record store")
    store = create_record_store(store_config)
    store.initialize()
    return store


@lru_cache()
def get_error_log() -> Optional[ErrorLogWriter]:
    """Get the storage failure log writer (cached).

    Returns None if the log directory cannot be created; the failure is
    logged and storage errors are then reported through logging only.
    """
    store_config = get_store_config()
    try:
        return ErrorLogWriter(store_config.error_log_path)
    except OSError as e:
        logger.error(f"Failed to create error log at {store_config.error_log_path}: {str(e)}", exc_info=True)
        return None


def get_intake_service(
    store: Annotated[RecordStorePort, Depends(get_record_store)],
    error_log: Annotated[Optional[ErrorLogWriter], Depends(get_error_log)],
) -> IntakeService:
    """Build the intake service for one request."""
    return IntakeService(store, error_log=error_log)


# Type aliases for dependency injection
StoreDep = Annotated[RecordStorePort, Depends(get_record_store)]
IntakeServiceDep = Annotated[IntakeService, Depends(get_intake_service)]
HubDep = Annotated[BroadcastHub, Depends(get_broadcast_hub)]
