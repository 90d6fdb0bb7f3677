#!/usr/bin/env python3
"""
Realtime Chat Server - Application

This module integrates all server modules (auth, chat, storage) into a single
ASGI application: JSON HTTP routes backed by a cookie session, and a
WebSocket endpoint carrying the realtime channel.
"""

import json
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request, WebSocket
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel
from starlette.middleware.sessions import SessionMiddleware

from common.constants import WEBSOCKET_PATH
from common.protocol_definitions import create_error_message
from server.auth.auth_server import AuthServer
from server.auth.credentials import CredentialVerifier
from server.chat.chat_server import ChatServer
from server.chat.connection import LiveConnection
from server.chat.connection_registry import ConnectionRegistry
from server.errors import ChatError, NotAuthenticatedError, PersistenceError
from server.storage.message_store import MessageStore
from server.utils.config import ServerConfig
from server.utils.logger import logger


class Credentials(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class ChatApplication:
    """Main server class that integrates all functionality."""

    def __init__(self, config: Optional[ServerConfig] = None, store: Optional[MessageStore] = None):
        self.config = config or ServerConfig()
        self.store = store or MessageStore(self.config.database_url)

        # Initialize modules
        self.registry = ConnectionRegistry()
        self.chat_server = ChatServer(self.registry, self.store, self.config.history_limit)
        self.auth_server = AuthServer(self.store, CredentialVerifier(self.config.bcrypt_rounds))

        if self.config.uses_default_secret():
            logger.warning("SESSION_SECRET is not set; using the built-in default secret")

        self.app = self.create_app()

    @asynccontextmanager
    async def lifespan(self, app: FastAPI):
        await self.store.init_db()
        try:
            yield
        finally:
            await self.store.close()

    def create_app(self) -> FastAPI:
        """Build the ASGI application."""
        app = FastAPI(title="Realtime Chat", lifespan=self.lifespan)
        app.add_middleware(SessionMiddleware, **self.config.get_session_settings())

        app.add_exception_handler(ChatError, self.handle_chat_error)
        app.add_exception_handler(RequestValidationError, self.handle_invalid_body)

        app.post("/register")(self.register)
        app.post("/login")(self.login)
        app.post("/logout")(self.logout)
        app.get("/check-auth")(self.check_auth)
        app.get("/messages")(self.get_messages)
        app.websocket(WEBSOCKET_PATH)(self.handle_client)

        if self.config.static_dir:
            app.mount("/", StaticFiles(directory=self.config.static_dir, html=True), name="static")

        return app

    async def handle_chat_error(self, request: Request, exc: ChatError) -> JSONResponse:
        """Render a ChatError as {"error": ...}."""
        if isinstance(exc, PersistenceError):
            logger.log_error(f"{request.method} {request.url.path}", exc)
            return JSONResponse({"error": "Server error"}, status_code=exc.status_code)
        return JSONResponse({"error": exc.message}, status_code=exc.status_code)

    async def handle_invalid_body(self, request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.debug(f"Invalid body on {request.url.path}: {exc.errors()}")
        return JSONResponse({"error": "Invalid request body"}, status_code=400)

    async def register(self, request: Request, credentials: Credentials):
        user = await self.auth_server.register(credentials.username, credentials.password)
        self.auth_server.start_session(request.session, user)
        return {"success": True, "username": user.username, "userId": user.id}

    async def login(self, request: Request, credentials: Credentials):
        user = await self.auth_server.login(credentials.username, credentials.password)
        self.auth_server.start_session(request.session, user)
        return {"success": True, "username": user.username, "userId": user.id}

    async def logout(self, request: Request):
        self.auth_server.end_session(request.session)
        return {"success": True}

    async def check_auth(self, request: Request):
        identity = self.auth_server.session_identity(request.session)
        if identity is None:
            return {"authenticated": False}
        return {"authenticated": True, **identity}

    async def get_messages(self, request: Request):
        if self.auth_server.session_identity(request.session) is None:
            raise NotAuthenticatedError()
        messages = await self.chat_server.get_history()
        return [message.to_dict() for message in messages]

    async def handle_client(self, websocket: WebSocket):
        """Handle individual realtime connection."""
        await websocket.accept()
        connection = LiveConnection(websocket, address=websocket.client)
        await self.chat_server.connect_client(connection)

        try:
            while True:
                if connection.closed:
                    break
                frame = await websocket.receive()
                if frame["type"] == "websocket.disconnect":
                    connection.mark_closed()
                    break

                text = frame.get("text")
                raw = text.encode("utf-8") if text is not None else (frame.get("bytes") or b"")

                # Validate message size in bytes BEFORE parsing
                size = len(raw)
                if size > self.config.max_frame_size:
                    logger.warning(f"Message too large from connection_id={connection.connection_id}: {size} bytes")
                    await self.chat_server.send_message(connection, create_error_message("Message too large"))
                    continue

                # Parse JSON message
                try:
                    message = json.loads(text if text is not None else raw.decode("utf-8", errors="replace"))
                    if not isinstance(message, dict):
                        raise ValueError("frame is not a JSON object")
                except ValueError as e:
                    logger.error(f"Malformed JSON from connection_id={connection.connection_id}: {e}")
                    await self.chat_server.send_message(connection, create_error_message("Malformed JSON"))
                    continue

                msg_type = message.get("type", "")
                if not isinstance(msg_type, str) or len(msg_type) == 0:
                    logger.warning(f"Received message with invalid type from connection_id={connection.connection_id}")
                    continue

                logger.debug(f"Received from connection_id={connection.connection_id}: {msg_type}")
                try:
                    await self.chat_server.dispatch(connection, message)
                except Exception as e:
                    logger.error(f"Error processing message from connection_id={connection.connection_id}: {e}")

        except Exception as e:
            logger.error(f"Socket error for connection_id={connection.connection_id}: {e}")
        finally:
            await self.chat_server.disconnect_client(connection)

    async def start(self):
        """Start the server."""
        info = self.config.get_connection_info()
        server = uvicorn.Server(uvicorn.Config(self.app, host=info['host'], port=info['port'], log_level="info"))
        logger.info(f"Server running on {info['host']}:{info['port']}")
        await server.serve()


def create_app(config: Optional[ServerConfig] = None) -> FastAPI:
    """Application factory (``uvicorn --factory server.main_server:create_app``)."""
    return ChatApplication(config or ServerConfig.from_env()).app
