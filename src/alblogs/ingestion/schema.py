"""
Table schema derivation from the ALB access log field list.

The field list is an ordered sequence of unique names supplied at build
time (see config/fields.txt). It defines both the positional mapping of
log record columns and the column order of the SQLite table.

The schema compiles each name to an explicit column type, validates it as
a safe identifier and renders three statements:

- CREATE TABLE for the log table
- CREATE UNIQUE INDEX used to deduplicate re-ingested rows
- INSERT OR IGNORE template taking named parameters
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from importlib import resources
from pathlib import Path
from typing import Iterable, Iterator, Optional, Sequence, Union

from ..config.constants import (
    INTEGER_FIELDS,
    REAL_FIELDS,
    REQUEST_IDENTITY_FIELDS,
    TABLE_NAME,
    UNIQUE_INDEX_NAME,
)
from ..exceptions import SchemaError

logger = logging.getLogger(__name__)

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class ColumnType(Enum):
    """Semantic type of a log table column."""

    INTEGER = "integer"
    REAL = "real"
    TEXT = "text"

    @property
    def sql_type(self) -> Optional[str]:
        """
        Declared SQLite type, or None for TEXT.

        TEXT columns carry no declared type so values such as "-",
        timestamps and quoted strings are stored exactly as logged.
        """
        if self is ColumnType.INTEGER:
            return "INTEGER"
        if self is ColumnType.REAL:
            return "REAL"
        return None


@dataclass(frozen=True)
class ColumnDefinition:
    """A single column of the log table."""

    name: str
    column_type: ColumnType

    def sql(self) -> str:
        """Render the column definition for CREATE TABLE."""
        sql_type = self.column_type.sql_type
        if sql_type:
            return f"{quote_identifier(self.name)} {sql_type}"
        return quote_identifier(self.name)


@dataclass(frozen=True)
class TableSchema:
    """
    Compiled schema of the log table.

    Iterating yields (create_table_sql, unique_index_sql, insert_sql).
    """

    table_name: str
    columns: tuple[ColumnDefinition, ...]
    unique_columns: tuple[str, ...]
    create_table_sql: str
    unique_index_sql: str
    insert_sql: str

    @property
    def field_names(self) -> tuple[str, ...]:
        """Column names in field order."""
        return tuple(column.name for column in self.columns)

    @property
    def ddl(self) -> list[str]:
        """Statements initializing the database."""
        return [self.create_table_sql, self.unique_index_sql]

    def __len__(self) -> int:
        return len(self.columns)

    def __iter__(self) -> Iterator[str]:
        yield self.create_table_sql
        yield self.unique_index_sql
        yield self.insert_sql


def quote_identifier(name: str) -> str:
    """Quote a validated identifier for use in SQL."""
    if not IDENTIFIER_PATTERN.match(name):
        raise SchemaError("unsafe SQL identifier", field=name)
    return f'"{name}"'


def validate_field_names(fields: Iterable[str]) -> tuple[str, ...]:
    """
    Check that a field list can be used as a table schema.

    Returns:
        The field names as a tuple, order preserved

    Raises:
        SchemaError: On an empty list, duplicate or unsafe names
    """
    names = tuple(fields)
    if not names:
        raise SchemaError("field list is empty")

    seen = set()
    for name in names:
        if not IDENTIFIER_PATTERN.match(name):
            raise SchemaError("invalid field name", field=name)
        if name in seen:
            raise SchemaError("duplicate field name", field=name)
        seen.add(name)
    return names


def load_field_names(path: Optional[Union[str, Path]] = None) -> tuple[str, ...]:
    """
    Load the ordered field list.

    Args:
        path: Newline-separated field names; defaults to the bundled
            config/fields.txt

    Returns:
        Validated field names in file order (blank lines ignored)
    """
    if path is None:
        text = (
            resources.files("alblogs.config")
            .joinpath("fields.txt")
            .read_text(encoding="utf-8")
        )
    else:
        try:
            text = Path(path).read_text(encoding="utf-8")
        except OSError as e:
            raise SchemaError(f"cannot read field list {path}: {e}") from e

    names = [line.strip() for line in text.splitlines() if line.strip()]
    return validate_field_names(names)


class SchemaBuilder:
    """
    Builds the log table schema from an ordered field list.

    Example:
        schema = SchemaBuilder().build(load_field_names())
        create_sql, index_sql, insert_sql = schema
    """

    def __init__(
        self,
        table_name: str = TABLE_NAME,
        index_name: str = UNIQUE_INDEX_NAME,
    ):
        self.table_name = table_name
        self.index_name = index_name

    @staticmethod
    def column_type(name: str) -> ColumnType:
        """Map a field name to its column type by exact name match."""
        if name in INTEGER_FIELDS:
            return ColumnType.INTEGER
        if name in REAL_FIELDS:
            return ColumnType.REAL
        return ColumnType.TEXT

    @staticmethod
    def unique_columns(fields: Sequence[str]) -> tuple[str, ...]:
        """
        Choose the columns of the deduplicating unique index.

        (request_creation_time, trace_id) identifies a request when both
        fields are logged. Otherwise every column is used, which merges
        distinct requests that happen to be identical in every field.
        """
        if all(name in fields for name in REQUEST_IDENTITY_FIELDS):
            return REQUEST_IDENTITY_FIELDS
        return tuple(fields)

    def build(self, fields: Iterable[str]) -> TableSchema:
        """
        Compile the field list into table, index and insert statements.

        Raises:
            SchemaError: If the field list is empty, has duplicates or
                contains names that are not safe identifiers
        """
        names = validate_field_names(fields)
        columns = tuple(
            ColumnDefinition(name=name, column_type=self.column_type(name))
            for name in names
        )
        unique = self.unique_columns(names)
        table = quote_identifier(self.table_name)

        column_lines = ",\n".join(f"    {column.sql()}" for column in columns)
        create_table_sql = f"CREATE TABLE IF NOT EXISTS {table} (\n{column_lines}\n)"

        unique_index_sql = (
            f"CREATE UNIQUE INDEX IF NOT EXISTS {quote_identifier(self.index_name)} "
            f"ON {table} ({', '.join(quote_identifier(n) for n in unique)})"
        )

        insert_sql = (
            f"INSERT OR IGNORE INTO {table} "
            f"({', '.join(quote_identifier(n) for n in names)}) "
            f"VALUES ({', '.join(':' + n for n in names)})"
        )

        logger.debug(
            f"Built schema for {len(columns)} fields, "
            f"unique on ({', '.join(unique)})"
        )
        return TableSchema(
            table_name=self.table_name,
            columns=columns,
            unique_columns=unique,
            create_table_sql=create_table_sql,
            unique_index_sql=unique_index_sql,
            insert_sql=insert_sql,
        )
