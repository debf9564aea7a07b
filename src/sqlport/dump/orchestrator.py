"""Dump orchestration: introspect, order, generate and assemble one document.

Stages run in a fixed sequence and all append to the same document:

    header -> disable FK checks -> begin -> tables -> views -> indexes
    -> deferred foreign keys -> data -> sequence resets -> commit
    -> enable FK checks

Any failure aborts the whole dump; no partial document is returned.

Usage:
    from sqlalchemy import create_engine
    from sqlport.dump import DumpOptions, dump_database

    engine = create_engine("sqlite:///./app.db")
    document = dump_database(engine, DumpOptions(target_dialect="postgresql"))
    Path("dump.sql").write_text(document.render())
"""

import logging

from sqlalchemy import Connection, Engine

from sqlport.dialects import DialectStrategy, get_dialect
from sqlport.dump.builder import StatementBuilder
from sqlport.dump.ddl import (
    generate_index_statements,
    generate_table_statements,
    generate_view_statements,
)
from sqlport.dump.models import DumpDocument, DumpOptions, Statement, StatementGroup
from sqlport.dump.sequences import generate_sequence_resets
from sqlport.dump.serializer import serialize_table, validate_conflict_mode
from sqlport.errors import NotFoundError
from sqlport.schema.dependencies import resolve_order
from sqlport.schema.introspector import SchemaIntrospector
from sqlport.schema.models import CatalogSnapshot

logger = logging.getLogger(__name__)


def build_header(options: DumpOptions, source: DialectStrategy, target: DialectStrategy) -> str:
    lines = ["SQL Dump generated by sqlport"]
    if options.generated_at is not None:
        lines.append(f"Date: {options.generated_at.isoformat()}")
    lines.append(f"Source: {source.label}")
    lines.append(f"Target: {target.label}")
    lines.append(f"Load with: {target.load_hint}")
    return "\n".join(lines)


def _control(name: str, sql: str) -> StatementGroup:
    return StatementGroup(name=name, statements=(Statement(sql=sql),))


def generate_dump(
    connection: Connection,
    options: DumpOptions,
    introspector: SchemaIntrospector | None = None,
) -> DumpDocument:
    """Generate a dump document from a live connection.

    All catalog and data reads go through ``connection``; open it inside a
    transaction for a read-consistent dump (``dump_database`` does this).

    Args:
        connection: Open SQLAlchemy connection to the source database.
        options: Dump options.
        introspector: Introspector to use instead of one built from
            ``connection``.

    Returns:
        Immutable DumpDocument.

    Raises:
        NotFoundError: If a requested table or view does not exist.
        CyclicDependencyError: If the FK graph has a cycle and
            ``cycle_policy`` is ``error``.
        MissingPrimaryKeyError: If ``replace`` is requested for a table
            without a primary key.
        UnsupportedTypeError: If a column type has no target mapping.
        IndexLimitExceededError: If a key is too wide for the target.
        DumpError: For any other failure, naming the object involved.
    """
    introspector = introspector or SchemaIntrospector(connection)
    source = get_dialect(introspector.source_dialect)
    target = get_dialect(options.target_dialect)
    builder = StatementBuilder(target, source=source)

    snapshot: CatalogSnapshot = introspector.introspect(
        tables=options.tables,
        views=options.views,
        table_prefix=options.table_prefix,
    )
    table_names = {t.name for t in snapshot.tables}
    for name in options.table_filters:
        if name not in table_names:
            raise NotFoundError("table", name)

    order = resolve_order(snapshot.tables, allow_cycles=options.cycle_policy == "defer")
    if options.include_data:
        validate_conflict_mode(snapshot.tables, options.conflict_mode)

    logger.debug(
        f"Dumping {len(snapshot.tables)} tables from {source.label} to {target.label} "
        f"in order: {', '.join(order.create_order)}"
    )

    groups: list[StatementGroup] = []
    if options.include_header:
        header = Statement(comment=build_header(options, source, target))
        groups.append(StatementGroup(name="header", statements=(header,), compact=True))

    groups.append(_control("disable_fk_checks", target.disable_fk_checks))
    groups.append(_control("begin", target.begin_transaction))

    if options.include_schema:
        creates, alters = generate_table_statements(
            snapshot.tables, order, builder, snapshot.indexes
        )
        groups.append(
            StatementGroup(
                name="tables", title="Schema (CREATE TABLE statements)", statements=tuple(creates)
            )
        )
        groups.append(
            StatementGroup(
                name="views",
                title="Views",
                statements=tuple(generate_view_statements(snapshot.views, builder)),
            )
        )
        indexes = generate_index_statements(snapshot.indexes, snapshot.tables, order, builder)
        groups.append(StatementGroup(name="indexes", title="Indexes", statements=tuple(indexes)))
        groups.append(
            StatementGroup(name="foreign_keys", title="Foreign keys", statements=tuple(alters))
        )

    if options.include_data:
        by_name = {t.name: t for t in snapshot.tables}
        ordered_tables = [by_name[name] for name in order.create_order]
        data: list[Statement] = []
        for table in ordered_tables:
            data.extend(
                serialize_table(
                    connection,
                    table,
                    builder,
                    source,
                    options.chunk_size,
                    options.conflict_mode,
                    options.table_filters.get(table.name),
                )
            )
        groups.append(
            StatementGroup(name="data", title="Data (INSERT statements)", statements=tuple(data))
        )
        resets = generate_sequence_resets(ordered_tables, target)
        groups.append(
            StatementGroup(name="sequences", title="Reset sequences", statements=tuple(resets))
        )

    groups.append(_control("commit", target.commit_transaction))
    groups.append(_control("enable_fk_checks", target.enable_fk_checks))

    document = DumpDocument(
        source_dialect=source.name,
        target_dialect=target.name,
        groups=tuple(groups),
    )
    logger.info(
        f"Generated {target.label} dump of {len(snapshot.tables)} tables: "
        f"{document.statement_count} statements"
    )
    return document


def dump_database(engine: Engine, options: DumpOptions) -> DumpDocument:
    """Dump a database through one connection inside one read-consistent transaction.

    On engines whose DDL is not transactional (MySQL) a concurrent ALTER can
    still be observed between the catalog read and the data read.

    Args:
        engine: SQLAlchemy engine for the source database.
        options: Dump options.

    Returns:
        Immutable DumpDocument.
    """
    isolation_level = get_dialect(engine.dialect.name).snapshot_isolation
    with engine.connect() as conn:
        conn.execution_options(isolation_level=isolation_level)
        with conn.begin():
            return generate_dump(conn, options)
