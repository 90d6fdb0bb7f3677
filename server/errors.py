"""
Exception types for the chat server.

Each error carries the HTTP status it maps to. HTTP routes let these
propagate to the application's exception handler; realtime handlers turn
them into auth_error/error events for the offending connection only.
"""

from typing import Any, Dict, Optional


class ChatError(Exception):
    """Base exception for all chat server errors."""

    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


class ValidationError(ChatError):
    """Bad registration or login input."""

    status_code = 400


class AuthError(ChatError):
    """Bad credentials or missing realtime handshake data."""

    status_code = 401


class ConflictError(ChatError):
    """Raised when a username is already taken."""

    status_code = 400

    def __init__(self, username: str):
        super().__init__("Username already exists", {"username": username})
        self.username = username


class PersistenceError(ChatError):
    """Raised when the store is unavailable or a write fails."""

    status_code = 500

    def __init__(self, operation: str, reason: str = ""):
        super().__init__(f"Store operation '{operation}' failed", {"reason": reason} if reason else None)
        self.operation = operation
        self.reason = reason


class NotAuthenticatedError(ChatError):
    """Message attempted without a session or completed handshake."""

    status_code = 401

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)
