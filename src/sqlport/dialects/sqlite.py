"""SQLite dialect strategy."""

from typing import ClassVar

from sqlport.dialects.base import ConflictMode, DialectStrategy
from sqlport.schema.models import ColumnDescriptor, SemanticType


class SqliteDialect(DialectStrategy):
    """SQLite 3.35+ (upserts and RETURNING)."""

    name = "sqlite"
    label = "SQLite"
    load_hint = "sqlite3 mydb.db < dump.sql"
    type_map: ClassVar[dict[SemanticType, str]] = {
        SemanticType.INTEGER: "INTEGER",
        SemanticType.BIGINT: "INTEGER",
        SemanticType.VARCHAR: "VARCHAR({length})",
        SemanticType.TEXT: "TEXT",
        SemanticType.BOOLEAN: "BOOLEAN",
        SemanticType.TIMESTAMP: "DATETIME",
        SemanticType.DATE: "DATE",
        SemanticType.FLOAT: "REAL",
        SemanticType.DECIMAL: "NUMERIC({precision},{scale})",
        SemanticType.BLOB: "BLOB",
        SemanticType.JSON: "TEXT",
        SemanticType.UUID: "VARCHAR(36)",
    }

    snapshot_isolation = "SERIALIZABLE"
    disable_fk_checks = "PRAGMA foreign_keys = OFF;"
    enable_fk_checks = "PRAGMA foreign_keys = ON;"
    begin_transaction = "BEGIN TRANSACTION;"

    def auto_increment_type(self, column: ColumnDescriptor) -> str:
        # Only an INTEGER primary key aliases the rowid
        return "INTEGER"

    def current_timestamp(self, column: ColumnDescriptor) -> str:
        return "CURRENT_TIMESTAMP"

    def current_epoch(self) -> str:
        return "(CAST(strftime('%s', 'now') AS INTEGER))"

    def insert_keyword(self, conflict_mode: ConflictMode) -> str:
        return "INSERT OR IGNORE INTO" if conflict_mode == "ignore" else "INSERT INTO"

    def conflict_clause(
        self,
        conflict_mode: ConflictMode,
        key_columns: list[str],
        update_columns: list[str],
    ) -> str:
        if conflict_mode != "replace":
            return ""
        target = ", ".join(key_columns)
        if not update_columns:
            return f" ON CONFLICT ({target}) DO NOTHING"
        assignments = ", ".join(f"{c} = excluded.{c}" for c in update_columns)
        return f" ON CONFLICT ({target}) DO UPDATE SET {assignments}"

    def create_view_prefix(self) -> str:
        return "CREATE VIEW IF NOT EXISTS"
