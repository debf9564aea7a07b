"""MySQL / MariaDB dialect strategy.

InnoDB under ``utf8mb4`` limits an index key to 3072 bytes at four bytes
per character. String key parts wider than 191 characters (and every TEXT
or BLOB key part) are written with a ``(191)`` prefix length; a key that is
still too wide after prefixing raises ``IndexLimitExceededError``.
"""

from typing import ClassVar

from sqlport.dialects.base import ConflictMode, DialectStrategy
from sqlport.errors import IndexLimitExceededError
from sqlport.schema.models import (
    ColumnDescriptor,
    ForeignKeyDescriptor,
    SemanticType,
    TableDescriptor,
)

PREFIX_LENGTH = 191
MAX_KEY_BYTES = 3072
BYTES_PER_CHAR = 4
MAX_VARCHAR_LENGTH = 16383

# Storage bytes of non-string key parts
_KEY_PART_BYTES: dict[SemanticType, int] = {
    SemanticType.INTEGER: 4,
    SemanticType.BIGINT: 8,
    SemanticType.BOOLEAN: 1,
    SemanticType.TIMESTAMP: 8,
    SemanticType.DATE: 3,
    SemanticType.FLOAT: 8,
    SemanticType.DECIMAL: 16,
    SemanticType.UUID: 36 * BYTES_PER_CHAR,
}


class MySQLDialect(DialectStrategy):
    """MySQL 8.0.13+ / MariaDB 10.3+ with InnoDB and utf8mb4."""

    name = "mysql"
    label = "MySQL"
    quote_char = "`"
    load_hint = "mysql mydb < dump.sql"
    type_map: ClassVar[dict[SemanticType, str]] = {
        SemanticType.INTEGER: "INT",
        SemanticType.BIGINT: "BIGINT",
        SemanticType.VARCHAR: "VARCHAR({length})",
        SemanticType.TEXT: "TEXT",
        SemanticType.BOOLEAN: "TINYINT(1)",
        SemanticType.TIMESTAMP: "DATETIME(6)",
        SemanticType.DATE: "DATE",
        SemanticType.FLOAT: "DOUBLE",
        SemanticType.DECIMAL: "DECIMAL({precision},{scale})",
        SemanticType.BLOB: "LONGBLOB",
        SemanticType.JSON: "JSON",
        SemanticType.UUID: "CHAR(36)",
    }
    decimal_fallback = "DECIMAL(38,10)"

    backslash_escapes = True
    # No CREATE INDEX IF NOT EXISTS; keys go inside CREATE TABLE IF NOT EXISTS
    inline_indexes = True
    supports_returning = False
    disable_fk_checks = "SET FOREIGN_KEY_CHECKS=0;"
    enable_fk_checks = "SET FOREIGN_KEY_CHECKS=1;"
    begin_transaction = "START TRANSACTION;"
    table_options = " ENGINE=InnoDB DEFAULT CHARSET=utf8mb4 COLLATE=utf8mb4_unicode_ci"

    def map_type(
        self,
        semantic_type: SemanticType,
        length: int | None = None,
        precision: int | None = None,
        scale: int | None = None,
    ) -> str:
        if semantic_type == SemanticType.VARCHAR and length and length > MAX_VARCHAR_LENGTH:
            semantic_type = SemanticType.TEXT
        return super().map_type(semantic_type, length, precision, scale)

    def auto_increment_type(self, column: ColumnDescriptor) -> str:
        if column.semantic_type == SemanticType.BIGINT:
            return "BIGINT"
        return "INT"

    def column_suffix(self, column: ColumnDescriptor) -> str:
        return " AUTO_INCREMENT" if column.auto_increment else ""

    # ------------------------------------------------------------------
    # Literals and defaults
    # ------------------------------------------------------------------

    def quote_string(self, value: str) -> str:
        escaped = value.replace("\\", "\\\\").replace("'", "''")
        return f"'{escaped}'"

    def current_timestamp(self, column: ColumnDescriptor) -> str:
        if column.semantic_type == SemanticType.TIMESTAMP:
            return "CURRENT_TIMESTAMP(6)"
        return "(CURRENT_TIMESTAMP)"

    def current_epoch(self) -> str:
        return "(CAST(UNIX_TIMESTAMP() AS SIGNED))"

    def wrap_literal_default(self, column: ColumnDescriptor, literal: str) -> str:
        # TEXT/BLOB/JSON only take expression defaults
        if self.map_type(column.semantic_type, column.length).endswith(("TEXT", "BLOB", "JSON")):
            return f"({literal})"
        return literal

    # ------------------------------------------------------------------
    # Inserts
    # ------------------------------------------------------------------

    def insert_keyword(self, conflict_mode: ConflictMode) -> str:
        return "INSERT IGNORE INTO" if conflict_mode == "ignore" else "INSERT INTO"

    def conflict_clause(
        self,
        conflict_mode: ConflictMode,
        key_columns: list[str],
        update_columns: list[str],
    ) -> str:
        if conflict_mode != "replace":
            return ""
        # VALUES(col): MariaDB does not accept the MySQL 8.0.19 row alias
        # A no-op assignment keeps duplicate rows untouched
        columns = update_columns or key_columns[:1]
        assignments = ", ".join(f"{c} = VALUES({c})" for c in columns)
        return f" ON DUPLICATE KEY UPDATE {assignments}"

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    def needs_prefix(self, column: ColumnDescriptor) -> bool:
        """True when a key part on this column must carry ``(191)``."""
        if column.semantic_type in (SemanticType.TEXT, SemanticType.BLOB):
            return True
        if column.semantic_type == SemanticType.VARCHAR:
            return not column.length or column.length > PREFIX_LENGTH
        return False

    def index_key_part(self, column: ColumnDescriptor) -> str:
        quoted = self.quote_identifier(column.name)
        if self.needs_prefix(column):
            return f"{quoted}({PREFIX_LENGTH})"
        return quoted

    def needs_table_level_unique(self, column: ColumnDescriptor) -> bool:
        return self.needs_prefix(column)

    def key_part_bytes(self, column: ColumnDescriptor, prefixed: bool = True) -> int:
        """Bytes a key part occupies, after prefix truncation when ``prefixed``."""
        if column.semantic_type in (SemanticType.VARCHAR, SemanticType.TEXT, SemanticType.BLOB):
            if prefixed and self.needs_prefix(column):
                return PREFIX_LENGTH * BYTES_PER_CHAR
            if column.semantic_type == SemanticType.VARCHAR and column.length:
                return column.length * BYTES_PER_CHAR
            # Unprefixed TEXT/BLOB cannot be indexed at all
            return MAX_KEY_BYTES + 1
        return _KEY_PART_BYTES.get(column.semantic_type, 8)

    def check_key_width(self, table: str, key_name: str, columns: list[ColumnDescriptor]) -> None:
        total = sum(self.key_part_bytes(c) for c in columns)
        if total > MAX_KEY_BYTES:
            raise IndexLimitExceededError(table, key_name, total, MAX_KEY_BYTES)

    def check_foreign_key(self, table: TableDescriptor, fk: ForeignKeyDescriptor) -> None:
        # FK indexes cannot use prefixes, so the full width must fit
        columns = [table.column(name) for name in fk.columns]
        total = sum(self.key_part_bytes(c, prefixed=False) for c in columns)
        if total > MAX_KEY_BYTES:
            name = fk.name or f"{table.name}_{'_'.join(fk.columns)}_foreign"
            raise IndexLimitExceededError(table.name, name, total, MAX_KEY_BYTES)

    def create_index_prefix(self, unique: bool) -> str:
        return "CREATE UNIQUE INDEX" if unique else "CREATE INDEX"
