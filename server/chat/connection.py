"""
Live connection module.

A LiveConnection wraps one realtime transport together with its handshake
state. The state is a tagged value: either Connected (no identity, may only
attempt authentication) or Authenticated (bound to a user id and username).
"""

import uuid
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from server.utils.logger import logger


@dataclass(frozen=True)
class Connected:
    """Transport is open; handshake not completed."""


@dataclass(frozen=True)
class Authenticated:
    """Handshake completed for this identity."""
    user_id: int
    username: str


ConnectionState = Union[Connected, Authenticated]


class LiveConnection:
    """
    One open realtime connection.

    `transport` is any object exposing ``async send_json(data)`` and
    ``async close(code, reason)``, such as a Starlette WebSocket.
    """

    def __init__(self, transport: Any, connection_id: Optional[str] = None, address: Any = None):
        self.transport = transport
        self.connection_id = connection_id or uuid.uuid4().hex
        self.address = address
        self.state: ConnectionState = Connected()
        self.closed = False

    @property
    def is_authenticated(self) -> bool:
        return isinstance(self.state, Authenticated)

    def bind(self, user_id: int, username: str):
        """Transition to Authenticated."""
        self.state = Authenticated(user_id=user_id, username=username)

    async def send_json(self, message: Dict[str, Any]):
        """Send one JSON frame. Errors propagate to the caller."""
        await self.transport.send_json(message)

    async def close(self, code: int = 1000, reason: str = ""):
        """Close the transport once; later calls are no-ops."""
        if self.closed:
            return
        self.closed = True
        try:
            await self.transport.close(code=code, reason=reason)
        except Exception as e:
            # Peer already gone
            logger.debug(f"Close of connection_id={self.connection_id} failed: {e}")

    def mark_closed(self):
        """Record that the peer closed the transport."""
        self.closed = True

    def __repr__(self) -> str:
        return f"LiveConnection({self.connection_id!r}, state={self.state!r})"
