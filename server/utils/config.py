"""
Server configuration module.

This module handles server-side configuration settings.
"""

import os
from typing import Optional

from common.constants import (
    DEFAULT_SERVER_HOST, DEFAULT_PORT, DEFAULT_DATABASE_URL, DEFAULT_SESSION_SECRET,
    SESSION_COOKIE_NAME, SESSION_MAX_AGE, BCRYPT_ROUNDS, MESSAGE_HISTORY_LIMIT,
    MAX_FRAME_SIZE, LOG_DIR
)

_TRUTHY = ('1', 'true', 'yes', 'on')


class ServerConfig:
    """Server configuration class."""

    def __init__(self, host: str = DEFAULT_SERVER_HOST, port: int = DEFAULT_PORT,
                 database_url: str = DEFAULT_DATABASE_URL,
                 session_secret: str = DEFAULT_SESSION_SECRET,
                 static_dir: Optional[str] = None, logs_dir: str = LOG_DIR):
        self.host = host
        self.port = port
        self.database_url = database_url
        self.static_dir = static_dir

        # Logging configuration
        self.logs_dir = logs_dir

        # Session settings
        self.session_secret = session_secret
        self.session_cookie = SESSION_COOKIE_NAME
        self.session_max_age = SESSION_MAX_AGE
        self.cookie_secure = False

        # Credential settings
        self.bcrypt_rounds = BCRYPT_ROUNDS

        # Chat settings
        self.history_limit = MESSAGE_HISTORY_LIMIT

        # Connection settings
        self.max_frame_size = MAX_FRAME_SIZE

    @classmethod
    def from_env(cls, environ=None) -> 'ServerConfig':
        """Build a configuration from environment variables."""
        env = os.environ if environ is None else environ
        config = cls(
            host=env.get('HOST', DEFAULT_SERVER_HOST),
            port=int(env.get('PORT', DEFAULT_PORT)),
            database_url=env.get('DATABASE_URL', DEFAULT_DATABASE_URL),
            session_secret=env.get('SESSION_SECRET', DEFAULT_SESSION_SECRET),
            static_dir=env.get('STATIC_DIR') or None,
            logs_dir=env.get('LOG_DIR', LOG_DIR)
        )
        config.cookie_secure = env.get('COOKIE_SECURE', '').lower() in _TRUTHY
        if env.get('BCRYPT_ROUNDS'):
            config.bcrypt_rounds = int(env['BCRYPT_ROUNDS'])
        return config

    def uses_default_secret(self) -> bool:
        """True when the session secret was never changed from the default."""
        return self.session_secret == DEFAULT_SESSION_SECRET

    def get_connection_info(self):
        """Get connection information."""
        return {
            'host': self.host,
            'port': self.port
        }

    def get_session_settings(self):
        """Get keyword arguments for the session middleware."""
        return {
            'secret_key': self.session_secret,
            'session_cookie': self.session_cookie,
            'max_age': self.session_max_age,
            'same_site': 'lax',
            'https_only': self.cookie_secure
        }

    def get_log_settings(self):
        """Get logging settings."""
        return {
            'logs_dir': self.logs_dir
        }
