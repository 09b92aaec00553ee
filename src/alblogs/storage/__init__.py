"""
Storage layer for loaded ALB access logs.

Usage:
    from alblogs.storage import get_backend

    with get_backend('/tmp/alblogs/my-alb.db') as backend:
        backend.initialize(schema)
        with backend.transaction() as cursor:
            cursor.execute(schema.insert_sql, row)
"""

from .base import (
    MissingTableError,
    QueryError,
    StorageBackend,
    StorageConnectionError,
    StorageError,
)
from .factory import get_backend
from .sqlite_backend import SQLiteBackend

__all__ = [
    # Base classes and exceptions
    "StorageBackend",
    "StorageError",
    "StorageConnectionError",
    "QueryError",
    "MissingTableError",
    # Implementations
    "SQLiteBackend",
    # Factory functions
    "get_backend",
]
