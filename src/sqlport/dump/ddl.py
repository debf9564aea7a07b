"""DDL generation: CREATE TABLE, CREATE VIEW and CREATE INDEX statements.

Statements are produced from descriptors in dependency order. Indexes the
target would create (or reject) on its own are suppressed:
- single-column unique indexes on a column already declared UNIQUE
- foreign-key backing indexes (``_foreign``/``_fkey`` names)

Targets without ``CREATE INDEX IF NOT EXISTS`` (MySQL) get the surviving
indexes as ``KEY`` clauses inside ``CREATE TABLE IF NOT EXISTS``, so a
reload skips them with the table.
"""

import logging
import re
from collections.abc import Sequence

from sqlport.dialects import get_dialect
from sqlport.dialects.lexer import iter_segments, unquote_identifier
from sqlport.dump.builder import StatementBuilder
from sqlport.dump.models import Statement
from sqlport.errors import DumpError
from sqlport.schema.dependencies import DependencyOrder, topological_order
from sqlport.schema.models import (
    ForeignKeyDescriptor,
    IndexDescriptor,
    TableDescriptor,
    ViewDescriptor,
)

logger = logging.getLogger(__name__)

FK_INDEX_SUFFIXES = ("_foreign", "_fkey")


# ============================================================================
# Tables
# ============================================================================


def deferred_foreign_keys(
    table: TableDescriptor,
    order: DependencyOrder,
    builder: StatementBuilder,
) -> list[ForeignKeyDescriptor]:
    """Foreign keys that must be added after every table exists.

    Only targets that reject forward references in CREATE TABLE defer
    anything; the others keep every foreign key inline.
    """
    if builder.dialect.inline_forward_references():
        return []
    return [fk for fk in table.foreign_keys if order.is_deferred(table.name, fk.referenced_table)]


def generate_table_statements(
    tables: Sequence[TableDescriptor],
    order: DependencyOrder,
    builder: StatementBuilder,
    indexes: Sequence[IndexDescriptor] = (),
) -> tuple[list[Statement], list[Statement]]:
    """Build CREATE TABLE statements in create order.

    Args:
        tables: Table descriptors, any order.
        order: Resolved dependency order.
        builder: Statement builder for the target dialect.
        indexes: Catalog indexes. Only used by targets that write secondary
            indexes inside CREATE TABLE.

    Returns:
        Tuple of (CREATE TABLE statements, deferred ALTER TABLE ... ADD
        CONSTRAINT statements).

    Raises:
        DumpError: If a table cannot be expressed in the target dialect.
    """
    by_name = {t.name: t for t in tables}
    creates: list[Statement] = []
    alters: list[Statement] = []

    for name in order.create_order:
        table = by_name[name]
        deferred = deferred_foreign_keys(table, order, builder)
        inline = surviving_indexes(indexes, table) if builder.dialect.inline_indexes else []
        try:
            creates.append(
                Statement(
                    sql=builder.create_table(table, deferred, inline), comment=f"Table: {name}"
                )
            )
            for fk in deferred:
                alters.append(
                    Statement(
                        sql=builder.add_foreign_key(table, fk),
                        comment=f"Foreign key: {name} -> {fk.referenced_table}",
                    )
                )
        except (KeyError, ValueError) as e:
            raise DumpError(f"Cannot generate DDL for table '{name}': {e}", table=name) from e

    return creates, alters


# ============================================================================
# Views
# ============================================================================


def _referenced_names(view: ViewDescriptor) -> set[str]:
    """Bare words and quoted identifiers of a view body, outside literals and comments."""
    backslash_escapes = get_dialect(view.source_dialect).backslash_escapes
    names: set[str] = set()
    for segment in iter_segments(view.definition, backslash_escapes=backslash_escapes):
        if segment.kind == "code":
            names.update(re.findall(r"[\w$]+", segment.text))
        elif segment.kind == "identifier":
            names.add(unquote_identifier(segment.text))
    return names


def order_views(views: Sequence[ViewDescriptor]) -> list[ViewDescriptor]:
    """Order views so one selecting from another comes after it."""
    names = [v.name for v in views]
    dependencies: dict[str, set[str]] = {}
    for view in views:
        referenced = _referenced_names(view)
        dependencies[view.name] = {
            other for other in names if other != view.name and other in referenced
        }
    order = topological_order(names, dependencies)
    by_name = {v.name: v for v in views}
    return [by_name[name] for name in order.create_order]


def generate_view_statements(
    views: Sequence[ViewDescriptor],
    builder: StatementBuilder,
) -> list[Statement]:
    """Build CREATE VIEW statements, re-quoting identifiers in each body."""
    return [
        Statement(sql=builder.create_view(view), comment=f"View: {view.name}")
        for view in order_views(views)
    ]


# ============================================================================
# Indexes
# ============================================================================


def index_skip_reason(index: IndexDescriptor, table: TableDescriptor) -> str | None:
    """Explain why an index is not emitted, or None when it should be.

    Example:
        >>> index_skip_reason(IndexDescriptor(name="t_email_unique", table="t",
        ...     columns=("email",), is_unique=True), table)
        "column 'email' is already declared UNIQUE"
    """
    if index.name.endswith(FK_INDEX_SUFFIXES):
        return "foreign-key backing index"
    if any(fk.name and fk.name == index.name for fk in table.foreign_keys):
        return "foreign-key backing index"
    if index.is_unique and len(index.columns) == 1:
        column = next((c for c in table.columns if c.name == index.columns[0]), None)
        if column is not None and column.unique:
            return f"column '{column.name}' is already declared UNIQUE"
    return None


def surviving_indexes(
    indexes: Sequence[IndexDescriptor], table: TableDescriptor
) -> list[IndexDescriptor]:
    """Indexes of ``table`` that are emitted, in catalog order."""
    kept: list[IndexDescriptor] = []
    for index in (i for i in indexes if i.table == table.name):
        reason = index_skip_reason(index, table)
        if reason:
            logger.debug(f"Skipping index '{index.name}' on '{table.name}': {reason}")
            continue
        kept.append(index)
    return kept


def generate_index_statements(
    indexes: Sequence[IndexDescriptor],
    tables: Sequence[TableDescriptor],
    order: DependencyOrder,
    builder: StatementBuilder,
) -> list[Statement]:
    """Build CREATE INDEX statements for every surviving index.

    Indexes are grouped by table in create order, keeping catalog order
    within a table. Targets that write indexes inside CREATE TABLE get
    no statements here.

    Raises:
        DumpError: If an index names a column its table does not have.
    """
    if builder.dialect.inline_indexes:
        return []

    by_name = {t.name: t for t in tables}
    statements: list[Statement] = []

    for table_name in order.create_order:
        table = by_name[table_name]
        for index in surviving_indexes(indexes, table):
            try:
                sql = builder.create_index(index, table)
            except KeyError as e:
                raise DumpError(
                    f"Cannot generate index '{index.name}' on '{table_name}': {e}",
                    table=table_name,
                ) from e
            statements.append(Statement(sql=sql, comment=f"Index: {index.name} on {table_name}"))

    return statements
