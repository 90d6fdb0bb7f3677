"""
Chat client module.

This module handles client-side chat messaging functionality over the
realtime channel.
"""

import json
from typing import Any, Callable, Optional

from common.constants import MessageTypes
from common.protocol_definitions import create_authenticate_message, create_send_message
from client.utils.logger import logger


class ChatClient:
    """Client-side chat functionality."""

    def __init__(self, websocket: Any = None):
        self.websocket = websocket
        self.authenticated = False
        self.message_handler: Optional[Callable] = None

    def set_websocket(self, websocket: Any):
        """Set the connection used for sending messages; a new one starts unauthenticated."""
        self.websocket = websocket
        self.authenticated = False

    def set_message_handler(self, handler: Callable):
        """Set a callback for incoming new_message events."""
        self.message_handler = handler

    async def send_message(self, message: dict) -> bool:
        """Send a JSON message to the server."""
        if not self.websocket:
            logger.error("[ERROR] Not connected to server")
            return False

        try:
            await self.websocket.send(json.dumps(message))
            return True
        except Exception as e:
            logger.error(f"[ERROR] Failed to send message: {e}")
            return False

    async def authenticate(self, user_id: int, username: str) -> bool:
        """Send the realtime handshake."""
        return await self.send_message(create_authenticate_message(user_id, username))

    async def send_chat(self, text: str) -> bool:
        """Send a chat message. Refused locally until the handshake completes."""
        if not self.authenticated:
            logger.warning("[WARN] Still connecting... try again in a moment")
            return False
        return await self.send_message(create_send_message(text))

    async def handle_message(self, message: dict):
        """Handle different types of chat messages from server."""
        msg_type = message.get('type', '')

        if msg_type == MessageTypes.AUTHENTICATED:
            self.authenticated = True
            logger.info("[INFO] Realtime channel authenticated")
        elif msg_type == MessageTypes.AUTH_ERROR:
            self.authenticated = False
            logger.error(f"[ERROR] Authentication error: {message.get('message')}. Try logging in again.")
        elif msg_type == MessageTypes.NEW_MESSAGE:
            await self._handle_new_message(message)
        elif msg_type == MessageTypes.ERROR:
            logger.error(f"[ERROR] Server error: {message.get('message', 'Unknown error')}")
        else:
            logger.debug(f"Ignoring message type '{msg_type}'")

    async def _handle_new_message(self, message: dict):
        """Handle incoming chat message."""
        if self.message_handler is not None:
            await self.message_handler(message)
        else:
            logger.show_message(message.get('username', 'unknown'), message.get('message', ''),
                                message.get('created_at', ''))
