"""
Chat module for client-side messaging functionality.

Handles:
- Realtime authentication handshake
- Sending chat messages
- Receiving broadcast messages
"""
