"""Connection events for the real-time relay.

Each WebSocket session is turned into a stream of discrete events by
``ClientConnection.events()``; the endpoint consumes them instead of wiring
callbacks.
"""

from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class MessageEvent:
    """A text message received from the client."""

    text: str


@dataclass(frozen=True)
class ClosedEvent:
    """The client closed the connection."""

    code: int = 1000
    reason: Optional[str] = None


@dataclass(frozen=True)
class ErrorEvent:
    """The transport failed while receiving."""

    error: Exception


ConnectionEvent = Union[MessageEvent, ClosedEvent, ErrorEvent]
