"""
Auth server module.

This module handles registration, login and the contents of the HTTP
session. It knows nothing about HTTP itself: routes pass plain values in
and receive a UserIdentity or a ChatError back.
"""

from typing import Any, Dict, MutableMapping, Optional

from common.constants import USERNAME_MIN_LENGTH, USERNAME_MAX_LENGTH, PASSWORD_MIN_LENGTH
from common.protocol_definitions import UserIdentity
from server.auth.credentials import CredentialVerifier
from server.errors import AuthError, ValidationError
from server.storage.message_store import MessageStore
from server.utils.logger import logger

SESSION_USER_ID = 'userId'
SESSION_USERNAME = 'username'


def _require_credentials(username: Any, password: Any):
    if not isinstance(username, str) or not isinstance(password, str) or not username or not password:
        raise ValidationError("Username and password required")


class AuthServer:
    """Server-side account functionality."""

    def __init__(self, store: MessageStore, verifier: CredentialVerifier):
        self.store = store
        self.verifier = verifier

    async def register(self, username: Any, password: Any) -> UserIdentity:
        """Create an account. Raises ValidationError or ConflictError."""
        _require_credentials(username, password)
        if (len(username) < USERNAME_MIN_LENGTH or len(username) > USERNAME_MAX_LENGTH
                or len(password) < PASSWORD_MIN_LENGTH):
            raise ValidationError(
                f"Username min {USERNAME_MIN_LENGTH} chars, max {USERNAME_MAX_LENGTH}, "
                f"password min {PASSWORD_MIN_LENGTH} chars"
            )

        password_hash = await self.verifier.hash_password(password)
        user = await self.store.create_user(username, password_hash)
        logger.log_registration(user.username, user.id)
        return user

    async def login(self, username: Any, password: Any) -> UserIdentity:
        """
        Verify credentials.

        Unknown usernames and wrong passwords raise the same AuthError so the
        response never reveals which one was wrong.
        """
        _require_credentials(username, password)

        user = await self.store.get_user_by_username(username)
        if user is None or not await self.verifier.verify_password(password, user.password_hash):
            logger.log_login_failed(username)
            raise AuthError("Invalid credentials")

        logger.log_login(user.username, user.id)
        return user

    @staticmethod
    def start_session(session: MutableMapping[str, Any], user: UserIdentity):
        """Store the identity in the HTTP session."""
        session[SESSION_USER_ID] = user.id
        session[SESSION_USERNAME] = user.username

    @staticmethod
    def end_session(session: MutableMapping[str, Any]):
        """Destroy the HTTP session."""
        session.clear()

    @staticmethod
    def session_identity(session: MutableMapping[str, Any]) -> Optional[Dict[str, Any]]:
        """Return {userId, username} if the session is logged in."""
        user_id = session.get(SESSION_USER_ID)
        if not user_id:
            return None
        return {'userId': user_id, 'username': session.get(SESSION_USERNAME)}
