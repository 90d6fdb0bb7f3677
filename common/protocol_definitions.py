"""
Protocol definitions for the realtime chat system.

This module defines the message structures and data formats used in communication
between client and server components. Every realtime frame is a single JSON
object whose "type" field names the event.
"""

from typing import Dict, Any, Optional
from dataclasses import dataclass
from datetime import datetime, timezone

from common.constants import MessageTypes


@dataclass(frozen=True)
class UserIdentity:
    """Registered account."""
    id: int
    username: str
    password_hash: str


@dataclass(frozen=True)
class ChatMessage:
    """Persisted chat message."""
    id: int
    user_id: int
    username: str
    text: str
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        """Public representation shared by GET /messages and new_message."""
        return {
            "username": self.username,
            "message": self.text,
            "created_at": format_timestamp(self.created_at)
        }


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Render a timestamp as ISO-8601, treating naive values as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def parse_user_id(value: Any) -> Optional[int]:
    """
    Normalize a user id received over the wire.

    Accepts positive integers and strings of digits; returns None for
    anything else (including booleans, zero and empty strings).
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, str) and value.strip().isdigit():
        parsed = int(value.strip())
        return parsed if parsed > 0 else None
    return None


def create_authenticate_message(user_id: int, username: str) -> Dict[str, Any]:
    """Create an authenticate message."""
    return {
        "type": MessageTypes.AUTHENTICATE,
        "userId": user_id,
        "username": username
    }


def create_send_message(text: str) -> Dict[str, Any]:
    """Create a send_message request."""
    return {
        "type": MessageTypes.SEND_MESSAGE,
        "message": text
    }


def create_authenticated_message() -> Dict[str, Any]:
    """Create a handshake success acknowledgment."""
    return {
        "type": MessageTypes.AUTHENTICATED,
        "success": True
    }


def create_auth_error_message(message: str) -> Dict[str, Any]:
    """Create a handshake failure message."""
    return {
        "type": MessageTypes.AUTH_ERROR,
        "message": message
    }


def create_new_message(message: ChatMessage) -> Dict[str, Any]:
    """Create a new_message broadcast from a persisted message."""
    payload = {"type": MessageTypes.NEW_MESSAGE}
    payload.update(message.to_dict())
    return payload


def create_error_message(message: str) -> Dict[str, Any]:
    """Create an error message."""
    return {
        "type": MessageTypes.ERROR,
        "message": message
    }
