"""
Server logging module.

This module handles server-side logging functionality.
"""

import logging
from datetime import datetime
from pathlib import Path

from common.constants import LOG_DIR, CHAT_LOG_FILE


class ServerLogger:
    """Server logging class."""

    def __init__(self, logs_dir: str = LOG_DIR, log_level: int = logging.INFO):
        self.logs_dir = Path(logs_dir)

        # Set up main logger
        self.logger = logging.getLogger('chat_server')
        self.logger.setLevel(log_level)

        # Remove existing handlers
        for handler in self.logger.handlers[:]:
            self.logger.removeHandler(handler)

        # Create console handler
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)

        # Create formatter
        formatter = logging.Formatter(
            '%(asctime)s [%(levelname)s] %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        console_handler.setFormatter(formatter)

        # Add handler to logger
        self.logger.addHandler(console_handler)

        self.chat_log_path = self.logs_dir / CHAT_LOG_FILE

    def configure(self, logs_dir: str = None, log_level: int = None):
        """Apply runtime settings (log directory, verbosity)."""
        if logs_dir is not None:
            self.logs_dir = Path(logs_dir)
            self.chat_log_path = self.logs_dir / CHAT_LOG_FILE
        if log_level is not None:
            self.logger.setLevel(log_level)
            for handler in self.logger.handlers:
                handler.setLevel(log_level)

    def info(self, message: str):
        """Log info message."""
        self.logger.info(message)

    def error(self, message: str):
        """Log error message."""
        self.logger.error(message)

    def warning(self, message: str):
        """Log warning message."""
        self.logger.warning(message)

    def debug(self, message: str):
        """Log debug message."""
        self.logger.debug(message)

    def log_connection(self, addr, connection_id: str):
        """Log realtime connection."""
        self.info(f"Socket connected from {addr}, connection_id={connection_id}")

    def log_authenticated(self, username: str, user_id: int, connection_id: str):
        """Log completed realtime handshake."""
        self.info(f"User authenticated: {username} (uid={user_id}) connection_id={connection_id}")

    def log_superseded(self, username: str, user_id: int, old_connection_id: str, new_connection_id: str):
        """Log forced disconnect of a replaced connection."""
        self.info(f"Disconnecting old socket for user {username} (uid={user_id}): "
                  f"{old_connection_id} superseded by {new_connection_id}")

    def log_disconnect(self, connection_id: str, username: str = None, user_id: int = None):
        """Log realtime disconnect."""
        if username is None:
            self.info(f"Socket disconnected: connection_id={connection_id} (unauthenticated)")
        else:
            self.info(f"User disconnected: {username} (uid={user_id}) connection_id={connection_id}")

    def log_registration(self, username: str, user_id: int):
        """Log new account."""
        self.info(f"User '{username}' registered with uid={user_id}")

    def log_login(self, username: str, user_id: int):
        """Log successful HTTP login."""
        self.info(f"User '{username}' logged in with uid={user_id}")

    def log_login_failed(self, username: str):
        """Log rejected HTTP login."""
        self.warning(f"Failed login attempt for username '{username}'")

    def log_chat(self, username: str, user_id: int, message: str):
        """Log chat message."""
        self.info(f"Message sent by {username} (uid={user_id}): {message}")
        self._write_to_file(self.chat_log_path, f"{datetime.now().isoformat()} | {username} (uid={user_id}) | {message}")

    def log_error(self, operation: str, error: Exception):
        """Log error with operation context."""
        self.error(f"Error in {operation}: {error}")

    def _write_to_file(self, file_path: Path, content: str):
        """Write content to log file."""
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(file_path, 'a', encoding='utf-8') as f:
                f.write(content + '\n')
        except OSError as e:
            self.error(f"Failed to write to log file {file_path}: {e}")


# Global logger instance
logger = ServerLogger()
