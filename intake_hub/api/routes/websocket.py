"""WebSocket relay endpoint.

Every text message received on ``/ws`` is broadcast verbatim to all open
connections, including the one that sent it.
"""

import logging

from fastapi import APIRouter, WebSocket

from intake_hub.api.dependencies import HubDep
from intake_hub.models.websocket import ClosedEvent, ErrorEvent, MessageEvent

router = APIRouter(tags=["websocket"])

logger = logging.getLogger(__name__)


@router.websocket("/ws")
async def websocket_relay(websocket: WebSocket, hub: HubDep):
    """Relay loop for one client.

    The connection is registered on accept and always unregistered when the
    loop ends, whether the client closed or the transport failed.
    """
    connection = await hub.connect(websocket)
    try:
        async for event in connection.events():
            if isinstance(event, MessageEvent):
                await hub.fanout(event.text, sender=connection)
            elif isinstance(event, ClosedEvent):
                logger.info(f"WebSocket client {connection.connection_id} closed (code {event.code})")
            elif isinstance(event, ErrorEvent):
                logger.error(
                    f"WebSocket error on {connection.connection_id}: {str(event.error)}",
                    exc_info=event.error,
                )
    finally:
        await hub.disconnect(connection)
