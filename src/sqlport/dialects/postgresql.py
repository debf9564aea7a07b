"""PostgreSQL dialect strategy."""

import math
from datetime import date, datetime
from typing import ClassVar

from sqlport.dialects.base import ConflictMode, DialectStrategy
from sqlport.dialects.literals import format_timestamp_text
from sqlport.schema.models import ColumnDescriptor, SemanticType


class PostgresDialect(DialectStrategy):
    """PostgreSQL 12+."""

    name = "postgresql"
    label = "PostgreSQL"
    load_hint = "psql -d mydb -f dump.sql"
    type_map: ClassVar[dict[SemanticType, str]] = {
        SemanticType.INTEGER: "INTEGER",
        SemanticType.BIGINT: "BIGINT",
        SemanticType.VARCHAR: "VARCHAR({length})",
        SemanticType.TEXT: "TEXT",
        SemanticType.BOOLEAN: "BOOLEAN",
        SemanticType.TIMESTAMP: "TIMESTAMP",
        SemanticType.DATE: "DATE",
        SemanticType.FLOAT: "DOUBLE PRECISION",
        SemanticType.DECIMAL: "NUMERIC({precision},{scale})",
        SemanticType.BLOB: "BYTEA",
        SemanticType.JSON: "JSONB",
        SemanticType.UUID: "UUID",
    }

    resets_sequences = True
    disable_fk_checks = "SET session_replication_role = replica;"
    enable_fk_checks = "SET session_replication_role = DEFAULT;"

    def auto_increment_type(self, column: ColumnDescriptor) -> str:
        return "BIGSERIAL" if column.semantic_type == SemanticType.BIGINT else "SERIAL"

    def format_boolean(self, value: bool) -> str:
        return "TRUE" if value else "FALSE"

    def format_timestamp(self, value: datetime) -> str:
        return f"{self.quote_string(format_timestamp_text(value))}::timestamp"

    def format_date(self, value: date) -> str:
        return f"{self.quote_string(value.isoformat())}::date"

    def format_bytes(self, value: bytes) -> str:
        return f"'\\x{value.hex()}'::bytea"

    def format_non_finite(self, value: float) -> str:
        if math.isnan(value):
            return "'NaN'::double precision"
        return "'Infinity'::double precision" if value > 0 else "'-Infinity'::double precision"

    def current_timestamp(self, column: ColumnDescriptor) -> str:
        return "CURRENT_TIMESTAMP"

    def current_epoch(self) -> str:
        return "(EXTRACT(EPOCH FROM NOW())::INTEGER)"

    def conflict_clause(
        self,
        conflict_mode: ConflictMode,
        key_columns: list[str],
        update_columns: list[str],
    ) -> str:
        if conflict_mode == "ignore":
            return " ON CONFLICT DO NOTHING"
        if conflict_mode != "replace":
            return ""
        target = ", ".join(key_columns)
        if not update_columns:
            return f" ON CONFLICT ({target}) DO NOTHING"
        assignments = ", ".join(f"{c} = EXCLUDED.{c}" for c in update_columns)
        return f" ON CONFLICT ({target}) DO UPDATE SET {assignments}"

    def inline_forward_references(self) -> bool:
        return False

    def guard_add_constraint(self, table: str, name: str, statement: str) -> str:
        """Run the ALTER from a ``DO`` block unless ``pg_constraint`` has ``name``.

        The block body is a plain string literal, so statement splitting
        treats it as one statement.
        """
        check = (
            f"SELECT 1 FROM pg_constraint WHERE conname = {self.quote_string(name)} "
            f"AND conrelid = {self.quote_string(self.quote_identifier(table))}::regclass"
        )
        body = f"BEGIN IF NOT EXISTS ({check}) THEN {statement} END IF; END"
        return f"DO {self.quote_string(body)};"

    def sequence_reset(self, table: str, column: str) -> str | None:
        """``setval`` to the highest loaded key, or mark unused on an empty table."""
        q_table = self.quote_identifier(table)
        q_col = self.quote_identifier(column)
        # pg_get_serial_sequence wants the table as a (quoted) name string
        table_arg = self.quote_string(q_table)
        col_arg = self.quote_string(column)
        return (
            f"SELECT setval(pg_get_serial_sequence({table_arg}, {col_arg}), "
            f"COALESCE(MAX({q_col}), 1), MAX({q_col}) IS NOT NULL) FROM {q_table};"
        )
