"""
Auth module for client-side account handling.

Handles:
- Registration, login and logout over HTTP
- Session cookie reuse
- Message history requests
"""
