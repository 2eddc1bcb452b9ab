"""Health check models for the Intake-Hub API."""

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field


class StoreHealth(BaseModel):
    """Record store health status.

    Attributes:
        status: Connection status
        backend: Store backend (file or postgresql)
        record_count: Stored records, when the store is reachable
    """
    status: Literal["connected", "disconnected"]
    backend: str
    record_count: int | None = Field(None, description="Number of stored records")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: Literal["healthy", "unhealthy"]
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    version: str = Field(default="1.0.0", description="Application version")
    store: StoreHealth
    connections: int = Field(0, description="Open real-time connections")
