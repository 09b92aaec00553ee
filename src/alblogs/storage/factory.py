"""
Storage backend factory.

Provides factory function to create the storage backend for a run.
"""

import logging
from pathlib import Path

from .base import StorageBackend, StorageError
from .sqlite_backend import SQLiteBackend

logger = logging.getLogger(__name__)


def get_backend(db_path: Path | str, **kwargs) -> StorageBackend:
    """
    Get the storage backend for a database file.

    Args:
        db_path: SQLite database file; parent directories are created
        **kwargs: Further SQLiteBackend arguments (timeout)

    Returns:
        StorageBackend instance (not yet connected).

    Raises:
        StorageError: If the backend cannot be created.

    Examples:
        backend = get_backend('/tmp/alblogs/my-alb.db')
    """
    try:
        backend = SQLiteBackend(db_path, **kwargs)
    except (TypeError, OSError) as e:
        raise StorageError(f"Failed to create sqlite backend: {e}") from e

    logger.debug(f"Created sqlite storage backend for {db_path}")
    return backend
