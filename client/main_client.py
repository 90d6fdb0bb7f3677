#!/usr/bin/env python3
"""
Realtime Chat Client

This module integrates the client modules (auth, chat) into a command-line
chat session: sign in over HTTP, load history, then open the realtime
channel and authenticate it on every (re)connect.
"""

import asyncio
import json
import sys

import httpx
import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from client.auth.auth_client import AuthClient, AuthClientError
from client.chat.chat_client import ChatClient
from client.utils.config import ClientConfig
from client.utils.logger import logger
from common.constants import SUPERSEDED_CLOSE_CODE


class RealtimeChatClient:
    """Main client class that integrates all functionality."""

    def __init__(self, config: ClientConfig, auth_client: AuthClient = None):
        self.config = config
        self.auth_client = auth_client or AuthClient(config.base_url, config.request_timeout)
        self.chat_client = ChatClient()
        self.websocket = None
        self.running = False
        self.superseded = False

    async def sign_in(self, register: bool = False) -> bool:
        """Reuse a live session or log in / register with the configured credentials."""
        try:
            status = await self.auth_client.check_auth()
            if not status.get('authenticated') or status.get('username') != self.config.username:
                if register:
                    await self.auth_client.register(self.config.username, self.config.password)
                else:
                    await self.auth_client.login(self.config.username, self.config.password)
        except AuthClientError as e:
            logger.log_login(self.config.username, None, False)
            logger.error(f"[ERROR] {e.message}")
            return False
        except httpx.HTTPError as e:
            logger.log_error("login", e)
            return False

        logger.log_login(self.auth_client.username, self.auth_client.user_id, True)
        return True

    async def load_history(self):
        """Fetch and show the recent message history."""
        try:
            messages = await self.auth_client.fetch_messages()
        except (AuthClientError, httpx.HTTPError) as e:
            logger.log_error("load_history", e)
            return
        logger.show_history(messages)

    async def connect(self, retry_count: int = 1) -> bool:
        """Open the realtime channel and send the handshake."""
        for attempt in range(retry_count):
            try:
                self.websocket = await websockets.connect(self.config.ws_url)
                logger.log_connection(self.config.ws_url, True)
                self.chat_client.set_websocket(self.websocket)
                await self.chat_client.authenticate(self.auth_client.user_id, self.auth_client.username)
                return True
            except (OSError, WebSocketException) as e:
                logger.log_connection(self.config.ws_url, False)
                logger.log_error("connection", e)
                if attempt + 1 < retry_count:
                    await asyncio.sleep(self.config.reconnect_delay(attempt))
        return False

    async def listen_for_messages(self):
        """Listen for incoming messages from server with automatic reconnection."""
        while self.running:
            try:
                async for raw in self.websocket:
                    try:
                        message = json.loads(raw)
                    except json.JSONDecodeError as e:
                        logger.error(f"[ERROR] Malformed JSON received: {e}")
                        continue
                    await self.chat_client.handle_message(message)
                close_code = self.websocket.close_code
            except ConnectionClosed as e:
                close_code = e.rcvd.code if e.rcvd is not None else None
            except asyncio.CancelledError:
                logger.info("[INFO] Listener cancelled")
                raise

            if not self.running:
                break

            if close_code == SUPERSEDED_CLOSE_CODE:
                logger.warning("[WARN] This account connected from another window; disconnected")
                self.superseded = True
                self.running = False
                break

            logger.info("[INFO] Server closed connection, attempting to reconnect...")
            if not await self._reconnect():
                break

    async def _reconnect(self) -> bool:
        """Reconnect to the server with exponential backoff."""
        for attempt in range(self.config.reconnect_attempts):
            delay = self.config.reconnect_delay(attempt)
            logger.info(f"[INFO] Attempting to reconnect in {delay}s "
                        f"(attempt {attempt + 1}/{self.config.reconnect_attempts})...")
            await asyncio.sleep(delay)

            if await self.connect():
                logger.info("[INFO] Reconnected successfully!")
                return True

        logger.error("[ERROR] Failed to reconnect after multiple attempts")
        self.running = False
        return False

    async def handle_command(self, line: str) -> bool:
        """Run a slash command. Returns False when the session should end."""
        if line == '/logout':
            try:
                await self.auth_client.logout()
            except (AuthClientError, httpx.HTTPError) as e:
                logger.log_error("logout", e)
            return False
        logger.show_interactive_mode_info()
        return True

    async def interactive_mode(self, register: bool = False):
        """Run client with interactive chat input."""
        if not await self.sign_in(register):
            await self.auth_client.close()
            return

        await self.load_history()

        if not await self.connect(retry_count=self.config.reconnect_attempts):
            await self.auth_client.close()
            return

        self.running = True
        listener_task = asyncio.create_task(self.listen_for_messages())

        logger.show_interactive_mode_info()

        try:
            while self.running:
                user_input = await asyncio.to_thread(sys.stdin.readline)
                if not user_input:
                    break  # EOF
                line = user_input.strip()
                if not line:
                    continue
                if line.startswith('/'):
                    if not await self.handle_command(line):
                        break
                    continue
                await self.chat_client.send_chat(line)
        finally:
            self.running = False
            listener_task.cancel()
            try:
                await listener_task
            except asyncio.CancelledError:
                pass

            if self.websocket is not None:
                await self.websocket.close()
            await self.auth_client.close()

            logger.info("[INFO] Disconnected from server")
