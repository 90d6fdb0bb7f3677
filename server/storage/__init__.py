"""
Storage module for server-side persistence.

Handles:
- User account records
- Append-only message log
- Recent history queries
"""
