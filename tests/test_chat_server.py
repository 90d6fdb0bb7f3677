#!/usr/bin/env python3
"""
Unit tests for the chat server handshake and broadcast.

Tests the realtime state machine against in-memory fakes:
- send_message is refused until the handshake completes
- Invalid handshakes leave the connection usable for a retry
- A newer handshake for the same user force-closes the older connection
- Belated disconnects do not evict the newer binding
- Events queued on a superseded connection are dropped
- Broadcast reaches every open connection, failures stay local
"""

import tempfile
import unittest

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from common.constants import MessageTypes, SUPERSEDED_CLOSE_CODE
from common.protocol_definitions import ChatMessage, utc_now
from server.chat.chat_server import ChatServer
from server.chat.connection import Authenticated, Connected, LiveConnection
from server.chat.connection_registry import ConnectionRegistry
from server.errors import PersistenceError
from server.utils.logger import logger


class FakeTransport:
    """Records frames and close calls instead of talking to a socket."""

    def __init__(self, fail: bool = False):
        self.sent = []
        self.closed_with = None
        self.fail = fail

    async def send_json(self, data):
        if self.fail:
            raise ConnectionResetError("peer gone")
        self.sent.append(data)

    async def close(self, code=1000, reason=""):
        self.closed_with = (code, reason)

    def types(self):
        return [frame["type"] for frame in self.sent]


class FakeStore:
    """In-memory message log."""

    def __init__(self):
        self.messages = []
        self.fail = False

    async def append_message(self, user_id, username, text):
        if self.fail:
            raise PersistenceError("append_message", "database is down")
        message = ChatMessage(len(self.messages) + 1, user_id, username, text, utc_now())
        self.messages.append(message)
        return message

    async def recent_messages(self, limit):
        return self.messages[-limit:]


class TestChatServer(unittest.IsolatedAsyncioTestCase):
    """Test cases for ChatServer."""

    async def asyncSetUp(self):
        # Keep chat_history.log out of the working tree
        self.logs = tempfile.TemporaryDirectory()
        self.previous_logs_dir = logger.logs_dir
        logger.configure(logs_dir=self.logs.name)

        self.registry = ConnectionRegistry()
        self.store = FakeStore()
        self.chat_server = ChatServer(self.registry, self.store)

    async def asyncTearDown(self):
        logger.configure(logs_dir=str(self.previous_logs_dir))
        self.logs.cleanup()

    async def open_connection(self, connection_id: str, fail: bool = False) -> LiveConnection:
        connection = LiveConnection(FakeTransport(fail=fail), connection_id=connection_id)
        await self.chat_server.connect_client(connection)
        return connection

    async def authenticate(self, connection, user_id=1, username="alice"):
        await self.chat_server.dispatch(connection, {
            "type": MessageTypes.AUTHENTICATE, "userId": user_id, "username": username
        })

    async def send(self, connection, text):
        await self.chat_server.dispatch(connection, {"type": MessageTypes.SEND_MESSAGE, "message": text})

    async def test_new_connection_starts_unauthenticated(self):
        conn = await self.open_connection("a")
        self.assertIsInstance(conn.state, Connected)
        self.assertFalse(conn.is_authenticated)
        self.assertEqual(self.chat_server.get_connection_count(), 1)

    async def test_send_before_authenticate_is_rejected(self):
        sender = await self.open_connection("a")
        watcher = await self.open_connection("b")

        await self.send(sender, "hi")

        self.assertEqual(sender.transport.sent, [{"type": "error", "message": "Not authenticated"}])
        self.assertEqual(watcher.transport.sent, [])
        self.assertEqual(self.store.messages, [])

    async def test_authenticate_success(self):
        conn = await self.open_connection("a")
        await self.authenticate(conn)

        self.assertEqual(conn.transport.sent, [{"type": "authenticated", "success": True}])
        self.assertEqual(conn.state, Authenticated(user_id=1, username="alice"))
        self.assertEqual(self.registry.lookup(1), "a")

    async def test_authenticate_accepts_numeric_string_id(self):
        conn = await self.open_connection("a")
        await self.authenticate(conn, user_id="1")

        self.assertEqual(conn.state, Authenticated(user_id=1, username="alice"))
        self.assertEqual(self.registry.lookup(1), "a")

    async def test_invalid_authentication_data_allows_retry(self):
        conn = await self.open_connection("a")

        for bad in ({"username": "alice"}, {"userId": 1}, {"userId": 1, "username": ""},
                    {"userId": 1, "username": "   "},
                    {"userId": 0, "username": "alice"}, {"userId": "abc", "username": "alice"}):
            await self.chat_server.dispatch(conn, dict(type=MessageTypes.AUTHENTICATE, **bad))

        self.assertEqual(conn.transport.types(), ["auth_error"] * 6)
        self.assertEqual(conn.transport.sent[0]["message"], "Invalid authentication data")
        self.assertIsInstance(conn.state, Connected)
        self.assertIsNone(conn.transport.closed_with)
        self.assertEqual(len(self.registry), 0)

        await self.authenticate(conn)
        self.assertTrue(conn.is_authenticated)

    async def test_send_after_authenticate_persists_and_broadcasts(self):
        sender = await self.open_connection("a")
        watcher = await self.open_connection("b")  # never authenticates
        await self.authenticate(sender)

        await self.send(sender, "hi")

        self.assertEqual(len(self.store.messages), 1)
        stored = self.store.messages[0]
        self.assertEqual((stored.user_id, stored.username, stored.text), (1, "alice", "hi"))

        for conn in (sender, watcher):
            frame = conn.transport.sent[-1]
            self.assertEqual(frame["type"], "new_message")
            self.assertEqual(frame["username"], "alice")
            self.assertEqual(frame["message"], "hi")
            self.assertIn("created_at", frame)

    async def test_blank_message_is_rejected(self):
        conn = await self.open_connection("a")
        await self.authenticate(conn)

        await self.send(conn, "   ")
        await self.chat_server.dispatch(conn, {"type": MessageTypes.SEND_MESSAGE})

        self.assertEqual(conn.transport.sent[-1], {"type": "error", "message": "Message text required"})
        self.assertEqual(self.store.messages, [])

    async def test_persistence_failure_reports_to_sender_only(self):
        sender = await self.open_connection("a")
        watcher = await self.open_connection("b")
        await self.authenticate(sender)
        self.store.fail = True

        await self.send(sender, "hi")

        self.assertEqual(sender.transport.sent[-1], {"type": "error", "message": "Failed to send message"})
        self.assertEqual(watcher.transport.sent, [])

    async def test_second_handshake_supersedes_first(self):
        first = await self.open_connection("a")
        second = await self.open_connection("b")

        await self.authenticate(first)
        await self.authenticate(second)

        self.assertEqual(first.transport.closed_with[0], SUPERSEDED_CLOSE_CODE)
        self.assertTrue(first.closed)
        self.assertEqual(self.registry.lookup(1), "b")
        self.assertEqual(second.transport.sent, [{"type": "authenticated", "success": True}])

    async def test_superseded_connection_cannot_reclaim_binding(self):
        first = await self.open_connection("a")
        second = await self.open_connection("b")
        await self.authenticate(first)
        await self.authenticate(second)

        # A handshake still queued on the closed connection is dropped
        await self.authenticate(first)

        self.assertEqual(self.registry.lookup(1), "b")
        self.assertIsNone(second.transport.closed_with)
        self.assertFalse(second.closed)
        self.assertEqual(first.transport.types(), ["authenticated"])

    async def test_superseded_connection_cannot_send(self):
        first = await self.open_connection("a")
        second = await self.open_connection("b")
        await self.authenticate(first)
        await self.authenticate(second)

        await self.send(first, "ghost")

        self.assertEqual(self.store.messages, [])
        self.assertEqual(second.transport.types(), ["authenticated"])

    async def test_belated_disconnect_keeps_newer_binding(self):
        first = await self.open_connection("a")
        second = await self.open_connection("b")
        await self.authenticate(first)
        await self.authenticate(second)

        await self.chat_server.disconnect_client(first)

        self.assertEqual(self.registry.lookup(1), "b")
        self.assertEqual(self.chat_server.get_connection_count(), 1)

    async def test_disconnect_releases_binding(self):
        conn = await self.open_connection("a")
        await self.authenticate(conn)

        await self.chat_server.disconnect_client(conn)

        self.assertIsNone(self.registry.lookup(1))
        self.assertEqual(self.chat_server.get_connection_count(), 0)

    async def test_disconnect_unauthenticated_leaves_registry_alone(self):
        owner = await self.open_connection("a")
        stranger = await self.open_connection("b")
        await self.authenticate(owner)

        await self.chat_server.disconnect_client(stranger)

        self.assertEqual(self.registry.lookup(1), "a")

    async def test_reauthenticate_same_identity_is_idempotent(self):
        conn = await self.open_connection("a")
        await self.authenticate(conn)
        await self.authenticate(conn)

        self.assertEqual(conn.transport.types(), ["authenticated", "authenticated"])
        self.assertIsNone(conn.transport.closed_with)
        self.assertEqual(self.registry.lookup(1), "a")

    async def test_reauthenticate_as_other_user_is_refused(self):
        conn = await self.open_connection("a")
        await self.authenticate(conn)
        await self.authenticate(conn, user_id=2, username="bob")

        self.assertEqual(conn.transport.sent[-1], {"type": "auth_error", "message": "Already authenticated"})
        self.assertEqual(conn.state, Authenticated(user_id=1, username="alice"))
        self.assertIsNone(self.registry.lookup(2))

    async def test_broadcast_failure_does_not_stop_delivery(self):
        broken = await self.open_connection("a", fail=True)
        healthy = await self.open_connection("b")

        failed = await self.chat_server.broadcast({"type": "new_message", "message": "x"})

        self.assertEqual(failed, [broken.connection_id])
        self.assertEqual(healthy.transport.sent, [{"type": "new_message", "message": "x"}])

    async def test_unknown_type_is_ignored(self):
        conn = await self.open_connection("a")
        await self.chat_server.dispatch(conn, {"type": "dance"})
        self.assertEqual(conn.transport.sent, [])

    async def test_history_uses_limit(self):
        conn = await self.open_connection("a")
        await self.authenticate(conn)
        for i in range(5):
            await self.send(conn, f"m{i}")

        self.chat_server.history_limit = 3
        history = await self.chat_server.get_history()

        self.assertEqual([m.text for m in history], ["m2", "m3", "m4"])


if __name__ == '__main__':
    unittest.main()
