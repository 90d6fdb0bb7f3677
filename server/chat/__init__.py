"""
Chat module for server-side messaging functionality.

Handles:
- Realtime authentication handshake
- One live connection per user
- Message persistence and broadcasting
"""
