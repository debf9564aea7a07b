"""Dialect strategy base class.

A ``DialectStrategy`` owns every engine-specific spelling the dump engine
needs: identifier quoting, type names, literal forms, FK/transaction control
statements, conflict clauses and index key-part rules. One strategy is
selected per dump and passed to the statement builder; nothing else in the
engine branches on the dialect name.
"""

import logging
from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import ClassVar, Literal

from sqlport.dialects.lexer import iter_segments, unquote_identifier
from sqlport.dialects.literals import format_timestamp_text
from sqlport.errors import UnsupportedTypeError
from sqlport.schema.models import (
    ColumnDefault,
    ColumnDescriptor,
    ForeignKeyDescriptor,
    SemanticType,
    TableDescriptor,
)

logger = logging.getLogger(__name__)

ConflictMode = Literal["error", "ignore", "replace"]


class DialectStrategy(ABC):
    """Engine-specific SQL spelling for one target dialect.

    Subclasses declare their type table in ``type_map`` using ``{length}``,
    ``{precision}`` and ``{scale}`` placeholders, and override the hooks
    whose default does not fit the engine.
    """

    name: ClassVar[str]
    label: ClassVar[str]
    quote_char: ClassVar[str] = '"'
    load_hint: ClassVar[str] = ""
    type_map: ClassVar[dict[SemanticType, str]] = {}
    decimal_fallback: ClassVar[str] = "NUMERIC"

    backslash_escapes: ClassVar[bool] = False
    supports_returning: ClassVar[bool] = True
    supports_savepoints: ClassVar[bool] = True
    resets_sequences: ClassVar[bool] = False
    inline_indexes: ClassVar[bool] = False
    snapshot_isolation: ClassVar[str] = "REPEATABLE READ"

    disable_fk_checks: ClassVar[str]
    enable_fk_checks: ClassVar[str]
    begin_transaction: ClassVar[str] = "BEGIN;"
    commit_transaction: ClassVar[str] = "COMMIT;"
    table_options: ClassVar[str] = ""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"

    # ------------------------------------------------------------------
    # Identifiers
    # ------------------------------------------------------------------

    def quote_identifier(self, name: str) -> str:
        """Quote an identifier, doubling any embedded quote character."""
        q = self.quote_char
        return f"{q}{name.replace(q, q * 2)}{q}"

    def convert_identifier_quotes(self, sql: str, source: "DialectStrategy") -> str:
        """Re-quote every quoted identifier in ``sql`` for this dialect.

        String literals and comments are left untouched. Used for view bodies
        and expression defaults, the only free-form SQL that passes through.
        """
        parts: list[str] = []
        for segment in iter_segments(sql, backslash_escapes=source.backslash_escapes):
            if segment.kind == "identifier":
                parts.append(self.quote_identifier(unquote_identifier(segment.text)))
            else:
                parts.append(segment.text)
        return "".join(parts)

    # ------------------------------------------------------------------
    # Types
    # ------------------------------------------------------------------

    def map_type(
        self,
        semantic_type: SemanticType,
        length: int | None = None,
        precision: int | None = None,
        scale: int | None = None,
    ) -> str:
        """Spell a semantic type in this dialect.

        Raises:
            UnsupportedTypeError: If the type has no mapping here.
        """
        if semantic_type == SemanticType.VARCHAR and not length:
            semantic_type = SemanticType.TEXT
        if semantic_type == SemanticType.DECIMAL and precision is None:
            return self.decimal_fallback

        template = self.type_map.get(semantic_type)
        if template is None:
            raise UnsupportedTypeError(semantic_type.value, self.label)
        return template.format(length=length, precision=precision, scale=scale or 0)

    def column_type(self, table: str, column: ColumnDescriptor) -> str:
        """Spell a column's type, attaching table/column context to failures."""
        if column.semantic_type == SemanticType.UNKNOWN:
            raise UnsupportedTypeError(column.type_label, self.label, table, column.name)
        if column.auto_increment:
            return self.auto_increment_type(column)
        try:
            return self.map_type(
                column.semantic_type, column.length, column.precision, column.scale
            )
        except UnsupportedTypeError as e:
            raise UnsupportedTypeError(e.type_name, self.label, table, column.name) from e

    def auto_increment_type(self, column: ColumnDescriptor) -> str:
        return self.map_type(column.semantic_type)

    def column_suffix(self, column: ColumnDescriptor) -> str:
        """Extra text after NOT NULL/DEFAULT, e.g. MySQL's AUTO_INCREMENT."""
        return ""

    # ------------------------------------------------------------------
    # Literals
    # ------------------------------------------------------------------

    def quote_string(self, value: str) -> str:
        return "'" + value.replace("'", "''") + "'"

    def format_boolean(self, value: bool) -> str:
        return "1" if value else "0"

    def format_timestamp(self, value: datetime) -> str:
        return self.quote_string(format_timestamp_text(value))

    def format_date(self, value: date) -> str:
        return self.quote_string(value.isoformat())

    def format_bytes(self, value: bytes) -> str:
        return f"X'{value.hex()}'"

    def format_non_finite(self, value: float) -> str:
        logger.warning(f"{self.label} cannot store {value!r}; writing NULL")
        return "NULL"

    # ------------------------------------------------------------------
    # Defaults
    # ------------------------------------------------------------------

    @abstractmethod
    def current_timestamp(self, column: ColumnDescriptor) -> str:
        """DEFAULT expression for "now"."""

    @abstractmethod
    def current_epoch(self) -> str:
        """DEFAULT expression for the current Unix epoch in seconds."""

    def wrap_literal_default(self, column: ColumnDescriptor, literal: str) -> str:
        return literal

    def default_clause(
        self,
        column: ColumnDescriptor,
        literal: str | None,
        source: "DialectStrategy",
    ) -> str | None:
        """Render a column default, or None when the column gets no DEFAULT.

        Args:
            column: Column whose ``default`` is rendered.
            literal: Pre-formatted literal for ``literal`` defaults.
            source: Dialect the default expression was read from.
        """
        default: ColumnDefault | None = column.default
        if default is None or column.auto_increment:
            return None
        if default.kind == "literal":
            return self.wrap_literal_default(column, literal or "NULL")
        if default.kind == "current_timestamp":
            return self.current_timestamp(column)
        if default.kind == "current_epoch":
            return self.current_epoch()
        expression = self.convert_identifier_quotes(str(default.value), source)
        return f"({expression})"

    # ------------------------------------------------------------------
    # Inserts
    # ------------------------------------------------------------------

    def insert_keyword(self, conflict_mode: ConflictMode) -> str:
        return "INSERT INTO"

    @abstractmethod
    def conflict_clause(
        self,
        conflict_mode: ConflictMode,
        key_columns: list[str],
        update_columns: list[str],
    ) -> str:
        """Trailing clause for an INSERT (already-quoted column names)."""

    # ------------------------------------------------------------------
    # Indexes and keys
    # ------------------------------------------------------------------

    def index_key_part(self, column: ColumnDescriptor) -> str:
        """One column reference inside an index, PK or UNIQUE key."""
        return self.quote_identifier(column.name)

    def needs_table_level_unique(self, column: ColumnDescriptor) -> bool:
        """True when a single-column UNIQUE cannot be written inline."""
        return False

    def check_key_width(self, table: str, key_name: str, columns: list[ColumnDescriptor]) -> None:
        """Raise ``IndexLimitExceededError`` if the key is too wide. No-op by default."""

    def check_foreign_key(self, table: TableDescriptor, fk: ForeignKeyDescriptor) -> None:
        """Validate a foreign key can be created here. No-op by default."""

    def create_index_prefix(self, unique: bool) -> str:
        return "CREATE UNIQUE INDEX IF NOT EXISTS" if unique else "CREATE INDEX IF NOT EXISTS"

    def create_view_prefix(self) -> str:
        return "CREATE OR REPLACE VIEW"

    def inline_forward_references(self) -> bool:
        """True when CREATE TABLE may reference a table that does not exist yet."""
        return True

    def guard_add_constraint(self, table: str, name: str, statement: str) -> str:
        """Wrap ``ALTER TABLE ... ADD CONSTRAINT`` so an existing ``name`` is skipped.

        Returned unchanged by default.
        """
        return statement

    # ------------------------------------------------------------------
    # Sequences
    # ------------------------------------------------------------------

    def sequence_reset(self, table: str, column: str) -> str | None:
        return None
