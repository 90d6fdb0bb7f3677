"""
Client configuration module.

This module handles client-side configuration settings.
"""

from common.constants import (
    DEFAULT_HOST, DEFAULT_PORT, WEBSOCKET_PATH,
    RECONNECT_ATTEMPTS, RECONNECT_DELAY_BASE, RECONNECT_DELAY_MAX
)


class ClientConfig:
    """Client configuration class."""

    def __init__(self, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT,
                 username: str = None, password: str = None, secure: bool = False):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.secure = secure

        # Connection settings
        self.reconnect_attempts = RECONNECT_ATTEMPTS
        self.reconnect_delay_base = RECONNECT_DELAY_BASE
        self.reconnect_delay_max = RECONNECT_DELAY_MAX
        self.request_timeout = 10.0  # seconds

    @property
    def base_url(self) -> str:
        scheme = 'https' if self.secure else 'http'
        return f"{scheme}://{self.host}:{self.port}"

    @property
    def ws_url(self) -> str:
        scheme = 'wss' if self.secure else 'ws'
        return f"{scheme}://{self.host}:{self.port}{WEBSOCKET_PATH}"

    def reconnect_delay(self, attempt: int) -> float:
        """Backoff before reconnect `attempt` (0-based): doubling, capped."""
        return min(self.reconnect_delay_base * (2 ** attempt), self.reconnect_delay_max)
