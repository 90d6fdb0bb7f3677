"""
Client package for the realtime chat system.

This package contains all client-side functionality including:
- Account login and registration over HTTP
- Realtime chat messaging
- Configuration and utilities
"""
