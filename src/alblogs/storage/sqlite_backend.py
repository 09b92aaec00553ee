"""
SQLite storage backend implementation.

Stores ALB access log records in a single SQLite file that can be
reused between runs and opened with the sqlite3 shell afterwards.
"""

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Iterator, Optional

from .base import MissingTableError, QueryError, StorageBackend, StorageConnectionError

if TYPE_CHECKING:
    from ..ingestion.schema import TableSchema

logger = logging.getLogger(__name__)

# Applied to every new connection
CONNECTION_PRAGMAS = [
    "PRAGMA journal_mode=WAL",
    "PRAGMA synchronous=off",
]


class SQLiteBackend(StorageBackend):
    """
    SQLite storage backend for ad-hoc log analysis.

    Transactions are controlled explicitly: the connection runs in
    autocommit mode and transaction() issues BEGIN/COMMIT/ROLLBACK.
    """

    def __init__(
        self,
        db_path: Path | str,
        *,
        timeout: float = 30.0,
    ):
        """
        Initialize SQLite backend.

        Args:
            db_path: Path to SQLite database file
            timeout: Connection timeout in seconds
        """
        self.db_path = Path(db_path)
        self._timeout = timeout
        self._connection: Optional[sqlite3.Connection] = None

        # Ensure parent directory exists
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._connection is None:
            connection = None
            try:
                connection = sqlite3.connect(
                    str(self.db_path),
                    timeout=self._timeout,
                    isolation_level=None,
                )
                for pragma in CONNECTION_PRAGMAS:
                    connection.execute(pragma)
            except sqlite3.Error as e:
                if connection is not None:
                    connection.close()
                raise StorageConnectionError(
                    f"Failed to open SQLite database {self.db_path}: {e}"
                ) from e
            self._connection = connection
            logger.debug(f"Connected to SQLite database: {self.db_path}")
        return self._connection

    @contextmanager
    def _cursor(self) -> Iterator[sqlite3.Cursor]:
        """Cursor for a single autocommitted statement."""
        cursor = self._get_connection().cursor()
        try:
            yield cursor
        except sqlite3.Error as e:
            raise QueryError(f"SQLite query failed: {e}") from e
        finally:
            cursor.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Cursor]:
        """
        Context manager wrapping the block in one transaction.

        sqlite3 errors raised in the block are re-raised as QueryError
        after rollback; any other exception is re-raised unchanged.
        """
        conn = self._get_connection()
        cursor = conn.cursor()
        try:
            try:
                cursor.execute("BEGIN")
            except sqlite3.Error as e:
                raise QueryError(f"Failed to begin transaction: {e}") from e

            try:
                yield cursor
            except sqlite3.Error as e:
                self._rollback(conn)
                raise QueryError(f"SQLite query failed: {e}") from e
            except BaseException:
                self._rollback(conn)
                raise

            try:
                cursor.execute("COMMIT")
            except sqlite3.Error as e:
                self._rollback(conn)
                raise QueryError(f"Failed to commit transaction: {e}") from e
        finally:
            cursor.close()

    @staticmethod
    def _rollback(conn: sqlite3.Connection) -> None:
        if conn.in_transaction:
            conn.execute("ROLLBACK")
            logger.debug("Transaction rolled back")

    def initialize(self, schema: "TableSchema") -> None:
        """
        Create the log table and unique index.

        Safe to call multiple times - uses IF NOT EXISTS. An existing
        table built from a different field list is left untouched.
        """
        logger.debug(f"Initializing SQLite database: {self.db_path}")

        with self.transaction() as cursor:
            for statement in schema.ddl:
                cursor.execute(statement)

    def close(self) -> None:
        """Optimize and close the database connection."""
        if self._connection is None:
            return
        try:
            self._connection.execute("PRAGMA optimize")
        except sqlite3.Error as e:
            logger.debug(f"PRAGMA optimize failed: {e}")
        finally:
            self._connection.close()
            self._connection = None
            logger.debug("SQLite connection closed")

    def query(
        self,
        sql: str,
        params: Optional[dict] = None,
    ) -> list[dict]:
        """
        Execute query and return results as list of dictionaries.

        Args:
            sql: SQL query (use :param_name for parameters)
            params: Optional parameter dictionary

        Returns:
            List of result rows as dictionaries
        """
        with self._cursor() as cursor:
            cursor.execute(sql, params or {})
            columns = [desc[0] for desc in cursor.description or []]
            rows = cursor.fetchall()
            return [dict(zip(columns, row)) for row in rows]

    def table_exists(self, table_name: str) -> bool:
        """Check if a table exists."""
        sql = """
            SELECT name FROM sqlite_master
            WHERE type='table' AND name=:table_name
        """
        result = self.query(sql, {"table_name": table_name})
        return len(result) > 0

    def get_table_row_count(self, table_name: str) -> int:
        """Get total row count for a table."""
        if not self.table_exists(table_name):
            raise MissingTableError(f"Table '{table_name}' does not exist")

        # table_name is validated by table_exists
        sql = f'SELECT COUNT(*) as count FROM "{table_name}"'
        result = self.query(sql)
        return result[0]["count"] if result else 0
