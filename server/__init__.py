"""
Server package for the realtime chat system.

This package contains all server-side functionality including:
- Account registration and login
- Realtime connection authentication
- Message persistence and broadcasting
- Configuration and utilities
"""
