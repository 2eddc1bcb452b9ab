"""Registry of live WebSocket connections."""

import asyncio
import logging
from typing import Set

from intake_hub.services.connection import ClientConnection

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """Concurrency-safe set of open connections.

    Iteration always goes through ``snapshot()``, so connections joining or
    leaving during a broadcast never disturb it.

    Thread Safety:
        Designed for a single event loop. All mutating operations are
        coroutines guarded by an asyncio.Lock.
    """

    def __init__(self):
        self._connections: Set[ClientConnection] = set()
        self._lock = asyncio.Lock()

    async def register(self, connection: ClientConnection) -> int:
        """Add a connection and return the new total."""
        async with self._lock:
            self._connections.add(connection)
            total = len(self._connections)
        logger.info(f"WebSocket client {connection.connection_id} registered. Total connections: {total}")
        return total

    async def unregister(self, connection: ClientConnection) -> bool:
        """Remove a connection.

        Returns:
            True if it was registered; unregistering twice is a no-op
        """
        async with self._lock:
            if connection not in self._connections:
                return False
            self._connections.discard(connection)
            total = len(self._connections)
        logger.info(f"WebSocket client {connection.connection_id} unregistered. Total connections: {total}")
        return True

    async def snapshot(self) -> list[ClientConnection]:
        """Return a stable copy of the current members."""
        async with self._lock:
            return list(self._connections)

    async def count(self) -> int:
        async with self._lock:
            return len(self._connections)

    def __contains__(self, connection: object) -> bool:
        return connection in self._connections
