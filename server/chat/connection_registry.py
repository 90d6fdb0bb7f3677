"""
Connection registry module.

Maps each user id to the single live connection that most recently
completed the realtime handshake for it. State lives for the lifetime of
the process only; clients rebuild it by re-authenticating after a restart.
"""

import asyncio
from typing import Dict, Optional


class ConnectionRegistry:
    """At-most-one-live-connection-per-user mapping."""

    def __init__(self):
        self._connections: Dict[int, str] = {}  # user_id -> connection_id
        self.lock = asyncio.Lock()  # Serializes register/unregister

    async def register(self, user_id: int, connection_id: str) -> Optional[str]:
        """
        Bind `user_id` to `connection_id`.

        Returns the id of the connection this replaces, or None when there was
        no previous binding or it already named `connection_id`. The caller is
        responsible for terminating the returned connection.
        """
        async with self.lock:
            previous = self._connections.get(user_id)
            self._connections[user_id] = connection_id

        if previous is None or previous == connection_id:
            return None
        return previous

    async def unregister(self, user_id: int, connection_id: str) -> bool:
        """
        Remove the binding only if it still names `connection_id`.

        A late disconnect from a superseded connection must not evict the
        newer one, so a mismatch is a no-op. Returns True if removed.
        """
        async with self.lock:
            if self._connections.get(user_id) != connection_id:
                return False
            del self._connections[user_id]
            return True

    def lookup(self, user_id: int) -> Optional[str]:
        """Current connection id for `user_id`, if any."""
        return self._connections.get(user_id)

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, user_id: int) -> bool:
        return user_id in self._connections
