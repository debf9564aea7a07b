"""Statement builder: the single boundary where SQL text is assembled.

Every identifier is quoted and every value escaped here, through the target
``DialectStrategy``. Generators hand the builder descriptors and get
finished statements back.

Usage:
    from sqlport.dialects import get_dialect
    from sqlport.dump.builder import StatementBuilder

    builder = StatementBuilder(get_dialect("postgresql"), source=get_dialect("sqlite"))
    builder.create_table(table)
    builder.insert(table, rows, conflict_mode="ignore")
"""

from collections.abc import Mapping, Sequence
from typing import Any

from sqlport.dialects import DialectStrategy, get_dialect
from sqlport.dialects.base import ConflictMode
from sqlport.dialects.literals import format_value
from sqlport.schema.models import (
    ColumnDescriptor,
    ForeignKeyDescriptor,
    IndexDescriptor,
    SemanticType,
    TableDescriptor,
    ViewDescriptor,
)


class StatementBuilder:
    """Formats CREATE/INSERT/ALTER statements for one target dialect.

    Args:
        dialect: Target dialect strategy.
        source: Dialect the free-form SQL (view bodies, expression defaults)
            was read from. Defaults to the target.
    """

    def __init__(self, dialect: DialectStrategy, source: DialectStrategy | None = None) -> None:
        self.dialect = dialect
        self.source = source or dialect

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------

    def ident(self, name: str) -> str:
        return self.dialect.quote_identifier(name)

    def ident_list(self, names: Sequence[str]) -> str:
        return ", ".join(self.ident(n) for n in names)

    def literal(self, value: Any, semantic_type: SemanticType) -> str:
        return format_value(value, semantic_type, self.dialect)

    def key_parts(self, table: TableDescriptor, key_name: str, columns: Sequence[str]) -> str:
        """Column list for a PK/UNIQUE/index key, with prefix lengths applied.

        Raises:
            IndexLimitExceededError: If the key is too wide for the target.
        """
        descriptors = [table.column(name) for name in columns]
        self.dialect.check_key_width(table.name, key_name, descriptors)
        return ", ".join(self.dialect.index_key_part(c) for c in descriptors)

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    def column_definition(self, table: TableDescriptor, column: ColumnDescriptor) -> str:
        parts = [self.ident(column.name), self.dialect.column_type(table.name, column)]
        if not column.nullable or column.name in table.primary_key:
            parts.append("NOT NULL")

        literal = None
        if column.default is not None and column.default.kind == "literal":
            literal = self.literal(column.default.value, column.semantic_type)
        default = self.dialect.default_clause(column, literal, self.source)
        if default is not None:
            parts.append(f"DEFAULT {default}")

        if column.unique and not self.dialect.needs_table_level_unique(column):
            parts.append("UNIQUE")
        return " ".join(parts) + self.dialect.column_suffix(column)

    def foreign_key_clause(self, fk: ForeignKeyDescriptor) -> str:
        clause = (
            f"FOREIGN KEY ({self.ident_list(fk.columns)}) "
            f"REFERENCES {self.ident(fk.referenced_table)} ({self.ident_list(fk.referenced_columns)})"
        )
        if fk.on_delete:
            clause += f" ON DELETE {fk.on_delete}"
        if fk.on_update:
            clause += f" ON UPDATE {fk.on_update}"
        return clause

    def create_table(
        self,
        table: TableDescriptor,
        skip_foreign_keys: Sequence[ForeignKeyDescriptor] = (),
        indexes: Sequence[IndexDescriptor] = (),
    ) -> str:
        """``CREATE TABLE IF NOT EXISTS`` with columns, keys and FKs.

        Args:
            table: Table descriptor.
            skip_foreign_keys: Foreign keys emitted later as ALTER TABLE.
            indexes: Secondary indexes written as ``KEY`` clauses, for
                targets without ``CREATE INDEX IF NOT EXISTS``.
        """
        clauses = [self.column_definition(table, c) for c in table.columns]

        if table.primary_key:
            pk_name = f"{table.name}_pkey"
            clauses.append(f"PRIMARY KEY ({self.key_parts(table, pk_name, table.primary_key)})")

        for column in table.columns:
            if column.unique and self.dialect.needs_table_level_unique(column):
                key_name = f"{table.name}_{column.name}_unique"
                clauses.append(f"UNIQUE ({self.key_parts(table, key_name, [column.name])})")

        for columns in table.unique_constraints:
            key_name = f"{table.name}_{'_'.join(columns)}_unique"
            clauses.append(f"UNIQUE ({self.key_parts(table, key_name, columns)})")

        for index in indexes:
            clauses.append(self.index_clause(index, table))

        for fk in table.foreign_keys:
            if fk in skip_foreign_keys:
                continue
            self.dialect.check_foreign_key(table, fk)
            clauses.append(self.foreign_key_clause(fk))

        body = ",\n  ".join(clauses)
        return (
            f"CREATE TABLE IF NOT EXISTS {self.ident(table.name)} (\n  {body}\n)"
            f"{self.dialect.table_options};"
        )

    def add_foreign_key(self, table: TableDescriptor, fk: ForeignKeyDescriptor) -> str:
        """``ALTER TABLE ... ADD CONSTRAINT``, guarded where the target allows."""
        self.dialect.check_foreign_key(table, fk)
        name = fk.name or f"{table.name}_{'_'.join(fk.columns)}_foreign"
        statement = (
            f"ALTER TABLE {self.ident(table.name)} "
            f"ADD CONSTRAINT {self.ident(name)} {self.foreign_key_clause(fk)};"
        )
        return self.dialect.guard_add_constraint(table.name, name, statement)

    # ------------------------------------------------------------------
    # Views and indexes
    # ------------------------------------------------------------------

    def create_view(self, view: ViewDescriptor) -> str:
        source = get_dialect(view.source_dialect)
        body = self.dialect.convert_identifier_quotes(view.definition, source)
        return f"{self.dialect.create_view_prefix()} {self.ident(view.name)} AS\n{body};"

    def create_index(self, index: IndexDescriptor, table: TableDescriptor) -> str:
        prefix = self.dialect.create_index_prefix(index.is_unique)
        key = self.key_parts(table, index.name, index.columns)
        return f"{prefix} {self.ident(index.name)} ON {self.ident(table.name)} ({key});"

    def index_clause(self, index: IndexDescriptor, table: TableDescriptor) -> str:
        """``[UNIQUE] KEY name (...)`` clause for use inside CREATE TABLE."""
        kind = "UNIQUE KEY" if index.is_unique else "KEY"
        key = self.key_parts(table, index.name, index.columns)
        return f"{kind} {self.ident(index.name)} ({key})"

    # ------------------------------------------------------------------
    # Data
    # ------------------------------------------------------------------

    def row_values(self, table: TableDescriptor, row: Mapping[str, Any]) -> str:
        literals: list[str] = []
        for column in table.columns:
            try:
                literals.append(self.literal(row.get(column.name), column.semantic_type))
            except ValueError as e:
                raise ValueError(f"column '{column.name}': {e}") from e
        return ", ".join(literals)

    def insert(
        self,
        table: TableDescriptor,
        rows: Sequence[Mapping[str, Any]],
        conflict_mode: ConflictMode = "error",
    ) -> str:
        """Multi-row INSERT for a chunk of rows.

        Raises:
            ValueError: If a value cannot be rendered for its column type.
        """
        columns = table.columns
        values = ",\n".join("(" + self.row_values(table, row) + ")" for row in rows)
        key_columns = [self.ident(c) for c in table.primary_key]
        update_columns = [self.ident(c.name) for c in columns if c.name not in table.primary_key]
        suffix = self.dialect.conflict_clause(conflict_mode, key_columns, update_columns)
        return (
            f"{self.dialect.insert_keyword(conflict_mode)} {self.ident(table.name)} "
            f"({self.ident_list(table.column_names)}) VALUES\n{values}{suffix};"
        )
