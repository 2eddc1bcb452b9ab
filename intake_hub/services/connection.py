"""WebSocket connection handle.

A ClientConnection owns one accepted WebSocket, a bounded outbound queue and
the single task that drains that queue onto the socket. Broadcasters only ever
enqueue; they never write to the socket themselves, so a slow client cannot
stall anyone else.
"""

import asyncio
import logging
import uuid
from typing import AsyncIterator, Optional

from fastapi import WebSocket

from intake_hub.models.websocket import ClosedEvent, ConnectionEvent, ErrorEvent, MessageEvent

logger = logging.getLogger(__name__)

# Close code sent when a client is dropped for falling behind ("try again later")
OVERFLOW_CLOSE_CODE = 1013


class ClientConnection:
    """Owned handle for one live WebSocket session.

    Parameters:
        websocket: Transport to wrap (not yet accepted)
        queue_size: Maximum messages buffered for this client
        overflow_policy: 'drop' discards the message that does not fit,
            'disconnect' closes the client
    """

    def __init__(self, websocket: WebSocket, queue_size: int = 100, overflow_policy: str = "drop"):
        self.websocket = websocket
        self.connection_id = uuid.uuid4().hex[:12]
        self.overflow_policy = overflow_policy
        self.dropped_messages = 0
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self._sender: Optional[asyncio.Task] = None
        self._closing: Optional[asyncio.Task] = None
        self._open = False

    def __repr__(self) -> str:
        return f"ClientConnection(id={self.connection_id}, open={self._open})"

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def pending(self) -> int:
        """Messages queued but not yet sent."""
        return self._queue.qsize()

    async def accept(self) -> None:
        """Accept the handshake and start the sender task."""
        await self.websocket.accept()
        self._open = True
        self._sender = asyncio.create_task(self._pump(), name=f"ws-sender-{self.connection_id}")

    def enqueue(self, message: str) -> bool:
        """Queue a message without blocking.

        Returns:
            True if the message was queued, False if the connection is closed
            or its queue was full
        """
        if not self._open:
            return False
        try:
            self._queue.put_nowait(message)
            return True
        except asyncio.QueueFull:
            self.dropped_messages += 1
            if self.overflow_policy == "disconnect":
                logger.warning(f"Send buffer full for {self.connection_id}, disconnecting client")
                self._open = False
                self._closing = asyncio.create_task(self.close(code=OVERFLOW_CLOSE_CODE))
            else:
                logger.warning(f"Send buffer full for {self.connection_id}, message dropped")
            return False

    async def _pump(self) -> None:
        while True:
            message = await self._queue.get()
            try:
                await self.websocket.send_text(message)
            except Exception as e:
                logger.warning(f"Failed to send message to {self.connection_id}: {str(e)}")
                self._open = False
                return

    async def events(self) -> AsyncIterator[ConnectionEvent]:
        """Yield receive-side events until the session ends.

        Binary frames are ignored. The generator finishes after yielding a
        ClosedEvent or ErrorEvent.
        """
        while True:
            try:
                message = await self.websocket.receive()
            except Exception as e:
                yield ErrorEvent(error=e)
                return

            if message["type"] == "websocket.disconnect":
                yield ClosedEvent(code=message.get("code", 1000), reason=message.get("reason"))
                return

            text = message.get("text")
            if text is not None:
                yield MessageEvent(text=text)
            else:
                logger.debug(f"Ignoring non-text frame from {self.connection_id}")

    async def close(self, code: int = 1000) -> None:
        """Stop the sender task and close the transport if still possible."""
        self._open = False
        if self._sender is not None and not self._sender.done():
            self._sender.cancel()
            try:
                await self._sender
            except asyncio.CancelledError:
                pass
        try:
            await self.websocket.close(code=code)
        except Exception as e:
            # Already closed by the client or the server
            logger.debug(f"Close on {self.connection_id} ignored: {str(e)}")
