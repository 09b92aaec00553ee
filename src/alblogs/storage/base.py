"""
Abstract base class for storage backends.

Provides the interface the ingestion engine loads log records through.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..ingestion.schema import TableSchema


class StorageBackend(ABC):
    """
    Abstract base class for storage backends.

    A backend owns one database, applies the log table schema and hands
    out per-file transactions.
    """

    @abstractmethod
    def initialize(self, schema: "TableSchema") -> None:
        """
        Create the log table and its unique index.

        Should be idempotent - safe to call on an existing database.
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """
        Flush and close the database.

        After close() returns the database file is complete on disk.
        """
        pass

    @abstractmethod
    def transaction(self) -> AbstractContextManager[Any]:
        """
        Open a transaction and yield a cursor.

        Commits when the block exits normally and rolls back when it
        exits with any exception, including KeyboardInterrupt.
        """
        pass

    @abstractmethod
    def table_exists(self, table_name: str) -> bool:
        """Check if a table exists in the storage backend."""
        pass

    @abstractmethod
    def get_table_row_count(self, table_name: str) -> int:
        """
        Get the total row count for a table.

        Raises:
            StorageError: If table doesn't exist or query fails.
        """
        pass

    def __enter__(self) -> "StorageBackend":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit - ensures resources are released."""
        self.close()


class StorageError(Exception):
    """Base exception for storage backend errors."""

    pass


class StorageConnectionError(StorageError):
    """Raised when connection to storage backend fails."""

    pass


class QueryError(StorageError):
    """Raised when a query fails to execute."""

    pass


class MissingTableError(StorageError):
    """Raised when a table required by an operation does not exist."""

    pass
