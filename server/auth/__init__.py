"""
Authentication module for server-side account handling.

Handles:
- Password hashing and verification
- Registration and login
- HTTP session contents
"""
