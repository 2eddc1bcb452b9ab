"""Real-time broadcast hub.

This module relays every inbound WebSocket message to all registered
connections, the sender included. It owns the connection lifecycle
(accept, register, unregister, close) on top of ConnectionRegistry.
"""

import logging
from typing import Optional

from fastapi import WebSocket

from intake_hub.infrastructure.settings import get_settings
from intake_hub.services.connection import ClientConnection
from intake_hub.services.connection_registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class BroadcastHub:
    """Fan messages out to every open connection.

    Delivery is non-blocking: fanout only enqueues onto each connection's
    bounded buffer, and a failure on one connection is logged and never
    reaches the sender or the other connections. Per-connection order follows
    the order of fanout calls.

    Parameters:
        registry: Registry of live connections (a fresh one by default)
        queue_size: Outbound buffer size for new connections
        overflow_policy: 'drop' or 'disconnect' when a buffer is full
    """

    def __init__(
        self,
        registry: Optional[ConnectionRegistry] = None,
        queue_size: int = 100,
        overflow_policy: str = "drop",
    ):
        self.registry = registry or ConnectionRegistry()
        self.queue_size = queue_size
        self.overflow_policy = overflow_policy

    async def connect(self, websocket: WebSocket) -> ClientConnection:
        """Accept a WebSocket and register its connection handle."""
        connection = ClientConnection(
            websocket, queue_size=self.queue_size, overflow_policy=self.overflow_policy
        )
        await connection.accept()
        await self.registry.register(connection)
        return connection

    async def disconnect(self, connection: ClientConnection) -> None:
        """Unregister and close a connection (idempotent)."""
        await self.registry.unregister(connection)
        await connection.close()

    async def fanout(self, message: str, sender: Optional[ClientConnection] = None) -> int:
        """Queue message for every open connection, including the sender.

        Connections found closed, whether by a failed send or by overflowing
        under the 'disconnect' policy, are unregistered on the spot.

        Returns:
            Number of connections the message was queued for
        """
        delivered = 0
        for connection in await self.registry.snapshot():
            if connection.is_open:
                try:
                    if connection.enqueue(message):
                        delivered += 1
                except Exception as e:
                    logger.warning(f"Failed to queue message for {connection.connection_id}: {str(e)}")
            if not connection.is_open and await self.registry.unregister(connection):
                logger.info(f"Removed closed connection {connection.connection_id} from registry")

        sender_id = sender.connection_id if sender is not None else "server"
        logger.debug(f"Broadcast from {sender_id} queued for {delivered} connections")
        return delivered

    async def connection_count(self) -> int:
        return await self.registry.count()


# Global hub instance
_hub: Optional[BroadcastHub] = None


def get_broadcast_hub() -> BroadcastHub:
    """Get the global broadcast hub, configured from settings on first use."""
    global _hub
    if _hub is None:
        settings = get_settings()
        _hub = BroadcastHub(
            queue_size=settings.ws_queue_size,
            overflow_policy=settings.ws_overflow_policy,
        )
    return _hub
