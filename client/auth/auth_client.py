"""
Auth client module.

This module talks to the HTTP side of the server. The session cookie set by
/register or /login is kept by the underlying httpx client and sent with
every later request.
"""

from typing import Any, Dict, List, Optional

import httpx


class AuthClientError(Exception):
    """HTTP request rejected by the server."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


class AuthClient:
    """Client-side account functionality."""

    def __init__(self, base_url: str, timeout: float = 10.0, http: Optional[httpx.AsyncClient] = None):
        self.http = http or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self.user_id: Optional[int] = None
        self.username: Optional[str] = None

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        response = await self.http.request(method, path, **kwargs)
        try:
            body = response.json()
        except ValueError:
            body = {}
        if response.is_error:
            message = body.get('error', response.reason_phrase) if isinstance(body, dict) else response.reason_phrase
            raise AuthClientError(response.status_code, message)
        return body

    def _remember(self, body: Dict[str, Any]) -> Dict[str, Any]:
        self.user_id = body.get('userId')
        self.username = body.get('username')
        return body

    async def register(self, username: str, password: str) -> Dict[str, Any]:
        """Create an account; the server starts a session."""
        body = await self._request('POST', '/register', json={'username': username, 'password': password})
        return self._remember(body)

    async def login(self, username: str, password: str) -> Dict[str, Any]:
        """Log in; the server starts a session."""
        body = await self._request('POST', '/login', json={'username': username, 'password': password})
        return self._remember(body)

    async def logout(self):
        """Destroy the server session."""
        await self._request('POST', '/logout')
        self.user_id = None
        self.username = None

    async def check_auth(self) -> Dict[str, Any]:
        """Ask whether the current session is logged in."""
        body = await self._request('GET', '/check-auth')
        if body.get('authenticated'):
            self._remember(body)
        return body

    async def fetch_messages(self) -> List[Dict[str, Any]]:
        """Most recent messages, oldest first."""
        return await self._request('GET', '/messages')

    @property
    def is_logged_in(self) -> bool:
        return self.user_id is not None

    async def close(self):
        await self.http.aclose()
