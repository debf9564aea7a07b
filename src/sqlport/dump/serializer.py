"""Data serialization: table rows to chunked INSERT statements.

Rows are read in primary-key order and rendered through the statement
builder, so values are formatted by their column's semantic type.

Usage:
    from sqlport.dump.serializer import serialize_table

    statements = serialize_table(conn, table, builder, source, chunk_size=100)
"""

import logging
from collections.abc import Iterator, Mapping, Sequence
from typing import Any

from sqlalchemy import Connection, text
from sqlalchemy.exc import SQLAlchemyError

from sqlport.dialects import DialectStrategy
from sqlport.dialects.base import ConflictMode
from sqlport.dump.builder import StatementBuilder
from sqlport.dump.models import Statement
from sqlport.errors import DumpError, MissingPrimaryKeyError
from sqlport.schema.models import TableDescriptor

logger = logging.getLogger(__name__)


def validate_conflict_mode(tables: Sequence[TableDescriptor], conflict_mode: ConflictMode) -> None:
    """Fail before any SQL is produced if ``replace`` cannot be honored.

    Raises:
        MissingPrimaryKeyError: If ``replace`` is requested and a table has
            no primary key.
    """
    if conflict_mode != "replace":
        return
    for table in tables:
        if not table.has_primary_key:
            raise MissingPrimaryKeyError(table.name)


def build_select(
    table: TableDescriptor,
    source: DialectStrategy,
    filters: Mapping[str, Any] | None = None,
) -> tuple[str, dict[str, Any]]:
    """Build the row query for a table in the source dialect.

    Args:
        table: Table to read.
        source: Dialect of the connection being read.
        filters: ``{column: value}`` equality filters, AND-ed.

    Returns:
        Tuple of (SQL text, bound parameters).

    Raises:
        DumpError: If a filter names a column the table does not have.
    """
    q = source.quote_identifier
    sql = f"SELECT {', '.join(q(c) for c in table.column_names)} FROM {q(table.name)}"

    params: dict[str, Any] = {}
    if filters:
        clauses = []
        for i, (column, value) in enumerate(filters.items()):
            if column not in table.column_names:
                raise DumpError(
                    f"Filter column '{column}' not found in table '{table.name}'",
                    table=table.name,
                )
            clauses.append(f"{q(column)} = :f{i}")
            params[f"f{i}"] = value
        sql += " WHERE " + " AND ".join(clauses)

    if table.primary_key:
        sql += f" ORDER BY {', '.join(q(c) for c in table.primary_key)}"
    return sql, params


def iter_row_chunks(
    connection: Connection,
    table: TableDescriptor,
    source: DialectStrategy,
    chunk_size: int,
    filters: Mapping[str, Any] | None = None,
) -> Iterator[list[dict[str, Any]]]:
    """Yield a table's rows in lists of at most ``chunk_size``.

    Uses a server-side cursor where the driver supports one, so large
    tables are not read into memory at once.
    """
    sql, params = build_select(table, source, filters)
    logger.debug(f"Reading rows from '{table.name}'")
    stmt = text(sql)
    if connection.dialect.supports_server_side_cursors:
        stmt = stmt.execution_options(stream_results=True)
    result = connection.execute(stmt, params)
    for partition in result.mappings().partitions(chunk_size):
        yield [dict(row) for row in partition]


def serialize_table(
    connection: Connection,
    table: TableDescriptor,
    builder: StatementBuilder,
    source: DialectStrategy,
    chunk_size: int,
    conflict_mode: ConflictMode = "error",
    filters: Mapping[str, Any] | None = None,
) -> list[Statement]:
    """Serialize one table's rows into INSERT statements.

    Args:
        connection: Source connection (inside the dump's transaction).
        table: Table descriptor.
        builder: Statement builder for the target dialect.
        source: Dialect of the source connection.
        chunk_size: Rows per INSERT statement (must be positive).
        conflict_mode: ``error``, ``ignore`` or ``replace``.
        filters: Optional ``{column: value}`` row filters.

    Returns:
        Statements for the table; a single comment-only entry when the
        table has no rows.

    Raises:
        MissingPrimaryKeyError: If ``replace`` is requested without a PK.
        DumpError: If reading fails or a value cannot be rendered.
    """
    validate_conflict_mode([table], conflict_mode)

    statements: list[Statement] = []
    row_count = 0
    try:
        for chunk in iter_row_chunks(connection, table, source, chunk_size, filters):
            comment = f"Data for table: {table.name}" if not statements else None
            statements.append(
                Statement(sql=builder.insert(table, chunk, conflict_mode), comment=comment)
            )
            row_count += len(chunk)
    except SQLAlchemyError as e:
        raise DumpError(f"Failed to read rows from '{table.name}': {e}", table=table.name) from e
    except ValueError as e:
        raise DumpError(f"Cannot serialize a row of '{table.name}': {e}", table=table.name) from e

    if not statements:
        return [Statement(comment=f"No data in table {table.name}")]

    logger.debug(f"Serialized {row_count} rows from '{table.name}' in {len(statements)} statements")
    return statements
