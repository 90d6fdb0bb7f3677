"""
Chat server module.

This module handles server-side chat messaging functionality: the realtime
authentication handshake, the per-user connection binding and the
broadcast of new messages to every open connection.
"""

import asyncio
from typing import Dict, List, Optional

from common.constants import (
    MessageTypes, MESSAGE_HISTORY_LIMIT, SUPERSEDED_CLOSE_CODE, SUPERSEDED_CLOSE_REASON
)
from common.protocol_definitions import (
    ChatMessage, parse_user_id, create_authenticated_message, create_auth_error_message,
    create_new_message, create_error_message
)
from server.chat.connection import Authenticated, Connected, LiveConnection
from server.chat.connection_registry import ConnectionRegistry
from server.errors import ChatError, NotAuthenticatedError, ValidationError
from server.storage.message_store import MessageStore
from server.utils.logger import logger


class ChatServer:
    """Server-side chat functionality."""

    def __init__(self, registry: ConnectionRegistry, store: MessageStore,
                 history_limit: int = MESSAGE_HISTORY_LIMIT):
        self.registry = registry
        self.store = store
        self.history_limit = history_limit
        self.connections: Dict[str, LiveConnection] = {}  # connection_id -> connection
        self.lock = asyncio.Lock()  # Protect shared state

    async def connect_client(self, connection: LiveConnection):
        """Track a newly opened connection in the Connected state."""
        async with self.lock:
            self.connections[connection.connection_id] = connection
        logger.log_connection(connection.address, connection.connection_id)

    async def broadcast(self, message: dict) -> List[str]:
        """
        Send a JSON message to every open connection.

        Recipients are not filtered by handshake state. Returns the ids of
        connections the message could not be delivered to.
        """
        async with self.lock:
            recipients = list(self.connections.values())

        failed = []
        for connection in recipients:
            if connection.closed:
                continue
            try:
                await connection.send_json(message)
            except Exception as e:
                logger.error(f"Failed to broadcast to connection_id={connection.connection_id}: {e}")
                failed.append(connection.connection_id)
        return failed

    async def send_message(self, connection: LiveConnection, message: dict) -> bool:
        """Send a JSON message to a specific connection."""
        try:
            await connection.send_json(message)
            return True
        except Exception as e:
            logger.error(f"Failed to send to connection_id={connection.connection_id}: {e}")
            return False

    async def dispatch(self, connection: LiveConnection, message: dict):
        """Route one inbound event to its handler."""
        if connection.closed:
            # Closed connections get no further events, even if frames were queued
            logger.debug(f"Dropping event from closed connection_id={connection.connection_id}")
            return

        msg_type = message.get('type', '')

        if msg_type == MessageTypes.AUTHENTICATE:
            await self.handle_authenticate(connection, message)
        elif msg_type == MessageTypes.SEND_MESSAGE:
            await self.handle_send_message(connection, message)
        else:
            logger.warning(f"Unknown message type '{msg_type}' from connection_id={connection.connection_id}")

    async def handle_authenticate(self, connection: LiveConnection, data: dict):
        """Process the realtime handshake."""
        user_id = parse_user_id(data.get('userId'))
        username = data.get('username')

        if user_id is None or not isinstance(username, str) or not username.strip():
            await self.send_message(connection, create_auth_error_message("Invalid authentication data"))
            return

        state = connection.state
        if isinstance(state, Authenticated):
            if (state.user_id, state.username) != (user_id, username):
                await self.send_message(connection, create_auth_error_message("Already authenticated"))
                return
        elif not isinstance(state, Connected):
            raise TypeError(f"Unexpected connection state {state!r}")

        superseded_id = await self.registry.register(user_id, connection.connection_id)
        if superseded_id is not None:
            await self._terminate_superseded(superseded_id, user_id, username, connection.connection_id)

        connection.bind(user_id, username)
        logger.log_authenticated(username, user_id, connection.connection_id)
        await self.send_message(connection, create_authenticated_message())

    async def _terminate_superseded(self, connection_id: str, user_id: int, username: str, new_connection_id: str):
        """Force-close a connection replaced by a newer handshake."""
        async with self.lock:
            old = self.connections.get(connection_id)
        if old is None:
            # Already gone; its disconnect will find the registry moved on
            return
        logger.log_superseded(username, user_id, connection_id, new_connection_id)
        await old.close(code=SUPERSEDED_CLOSE_CODE, reason=SUPERSEDED_CLOSE_REASON)

    async def handle_send_message(self, connection: LiveConnection, data: dict):
        """Persist an authenticated message and broadcast it to all."""
        try:
            sender = self._require_writer(connection)
            text = data.get('message')
            if not isinstance(text, str) or not text.strip():
                raise ValidationError("Message text required")
            message = await self.store.append_message(sender.user_id, sender.username, text)
        except (NotAuthenticatedError, ValidationError) as e:
            await self.send_message(connection, create_error_message(e.message))
            return
        except ChatError as e:
            logger.log_error("send_message", e)
            await self.send_message(connection, create_error_message("Failed to send message"))
            return

        logger.log_chat(message.username, message.user_id, message.text)
        await self.broadcast(create_new_message(message))

    def _require_writer(self, connection: LiveConnection) -> Authenticated:
        """
        Return the sender identity if `connection` may write.

        Only an Authenticated connection that is still the registered one for
        its user may send; a superseded connection is rejected even before its
        transport finishes closing.
        """
        state = connection.state
        if not isinstance(state, Authenticated):
            raise NotAuthenticatedError()
        if self.registry.lookup(state.user_id) != connection.connection_id:
            raise NotAuthenticatedError()
        return state

    async def get_history(self, limit: Optional[int] = None) -> List[ChatMessage]:
        """Most recent messages, oldest first."""
        return await self.store.recent_messages(limit or self.history_limit)

    async def disconnect_client(self, connection: LiveConnection):
        """Release a connection and its registry binding, if still current."""
        async with self.lock:
            self.connections.pop(connection.connection_id, None)

        state = connection.state
        if isinstance(state, Authenticated):
            await self.registry.unregister(state.user_id, connection.connection_id)
            logger.log_disconnect(connection.connection_id, state.username, state.user_id)
        else:
            logger.log_disconnect(connection.connection_id)

        await connection.close()

    def get_connection_count(self) -> int:
        """Get the number of open connections."""
        return len(self.connections)
