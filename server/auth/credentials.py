"""
Credential verifier.

Wraps bcrypt so the rest of the server treats password hashes as opaque
strings. Hashing is deliberately slow, so both operations run in a worker
thread and never block the event loop.
"""

import asyncio

import bcrypt

from common.constants import BCRYPT_ROUNDS, BCRYPT_MAX_PASSWORD_BYTES


class CredentialVerifier:
    """Hash and compare passwords with bcrypt."""

    def __init__(self, rounds: int = BCRYPT_ROUNDS):
        self.rounds = rounds

    @staticmethod
    def _secret(password: str) -> bytes:
        # bcrypt only reads the first 72 bytes
        return password.encode('utf-8')[:BCRYPT_MAX_PASSWORD_BYTES]

    def _hash(self, password: str) -> str:
        return bcrypt.hashpw(self._secret(password), bcrypt.gensalt(rounds=self.rounds)).decode('utf-8')

    @staticmethod
    def _check(password: str, password_hash: str) -> bool:
        try:
            return bcrypt.checkpw(CredentialVerifier._secret(password), password_hash.encode('utf-8'))
        except ValueError:
            # Malformed stored hash
            return False

    async def hash_password(self, password: str) -> str:
        """Return a bcrypt hash for `password`."""
        return await asyncio.to_thread(self._hash, password)

    async def verify_password(self, password: str, password_hash: str) -> bool:
        """Return True if `password` matches `password_hash`."""
        return await asyncio.to_thread(self._check, password, password_hash)
