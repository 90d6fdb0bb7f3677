"""
Shared constants for the realtime chat system.

This module contains all constants used across client and server components.
"""

# Network Configuration
DEFAULT_HOST = 'localhost'
DEFAULT_SERVER_HOST = '0.0.0.0'
DEFAULT_PORT = 3000
WEBSOCKET_PATH = '/ws'

# Persistence
DEFAULT_DATABASE_URL = 'sqlite+aiosqlite:///chat.db'
BCRYPT_ROUNDS = 10
BCRYPT_MAX_PASSWORD_BYTES = 72

# Session cookie
DEFAULT_SESSION_SECRET = 'your-secret-key-change-this'
SESSION_COOKIE_NAME = 'session'
SESSION_MAX_AGE = 24 * 60 * 60  # 24 hours

# Account rules
USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 50
PASSWORD_MIN_LENGTH = 6

# Chat History
MESSAGE_HISTORY_LIMIT = 100

# Frames
MAX_FRAME_SIZE = 1024 * 1024  # 1MB

# Close code sent to a connection replaced by a newer handshake for the same user
SUPERSEDED_CLOSE_CODE = 4001
SUPERSEDED_CLOSE_REASON = 'Session superseded'

# Client reconnection
RECONNECT_ATTEMPTS = 5
RECONNECT_DELAY_BASE = 1.0  # seconds
RECONNECT_DELAY_MAX = 5.0  # seconds

# Logging
LOG_DIR = 'logs'
CHAT_LOG_FILE = 'chat_history.log'


# Message Types
class MessageTypes:
    # Client to Server
    AUTHENTICATE = 'authenticate'
    SEND_MESSAGE = 'send_message'

    # Server to Client
    AUTHENTICATED = 'authenticated'
    AUTH_ERROR = 'auth_error'
    NEW_MESSAGE = 'new_message'
    ERROR = 'error'
