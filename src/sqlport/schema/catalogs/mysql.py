"""MySQL / MariaDB catalog reader (``information_schema`` + ``SHOW INDEX``)."""

import logging
import re
from collections import defaultdict

from sqlport.schema.catalogs.base import CatalogReader, normalize_fk_action, parse_default
from sqlport.schema.models import (
    ColumnDefault,
    ColumnDescriptor,
    ForeignKeyDescriptor,
    IndexDescriptor,
    SemanticType,
    STRING_TYPES,
    TableDescriptor,
    ViewDescriptor,
)

logger = logging.getLogger(__name__)

_TYPE_MAP: dict[str, SemanticType] = {
    "tinyint": SemanticType.INTEGER,
    "smallint": SemanticType.INTEGER,
    "mediumint": SemanticType.INTEGER,
    "int": SemanticType.INTEGER,
    "integer": SemanticType.INTEGER,
    "bigint": SemanticType.BIGINT,
    "varchar": SemanticType.VARCHAR,
    "char": SemanticType.VARCHAR,
    "enum": SemanticType.VARCHAR,
    "set": SemanticType.VARCHAR,
    "tinytext": SemanticType.TEXT,
    "text": SemanticType.TEXT,
    "mediumtext": SemanticType.TEXT,
    "longtext": SemanticType.TEXT,
    "datetime": SemanticType.TIMESTAMP,
    "timestamp": SemanticType.TIMESTAMP,
    "date": SemanticType.DATE,
    "float": SemanticType.FLOAT,
    "double": SemanticType.FLOAT,
    "real": SemanticType.FLOAT,
    "decimal": SemanticType.DECIMAL,
    "numeric": SemanticType.DECIMAL,
    "tinyblob": SemanticType.BLOB,
    "blob": SemanticType.BLOB,
    "mediumblob": SemanticType.BLOB,
    "longblob": SemanticType.BLOB,
    "binary": SemanticType.BLOB,
    "varbinary": SemanticType.BLOB,
    "json": SemanticType.JSON,
}


def mysql_semantic_type(data_type: str, column_type: str) -> SemanticType:
    """Map ``DATA_TYPE``/``COLUMN_TYPE`` to a semantic type."""
    column_type = column_type.lower()
    if column_type.startswith("tinyint(1)") or column_type == "bit(1)":
        return SemanticType.BOOLEAN
    return _TYPE_MAP.get(data_type.lower(), SemanticType.UNKNOWN)


class MySQLCatalog(CatalogReader):
    """Catalog reader for MySQL and MariaDB (current database only)."""

    dialect_name = "mysql"
    unique_indexes_are_constraints = True

    def list_tables(self) -> list[str]:
        rows = self._rows(
            "SELECT TABLE_NAME AS name FROM information_schema.TABLES "
            "WHERE TABLE_SCHEMA = DATABASE() AND TABLE_TYPE = 'BASE TABLE' "
            "ORDER BY TABLE_NAME"
        )
        return [r["name"] for r in rows]

    def list_views(self) -> list[str]:
        rows = self._rows(
            "SELECT TABLE_NAME AS name FROM information_schema.VIEWS "
            "WHERE TABLE_SCHEMA = DATABASE() ORDER BY TABLE_NAME"
        )
        return [r["name"] for r in rows]

    def read_table(self, name: str) -> tuple[TableDescriptor, list[IndexDescriptor]]:
        columns = self._read_columns(name)
        primary_key = [
            r["column_name"]
            for r in self._rows(
                "SELECT COLUMN_NAME AS column_name FROM information_schema.KEY_COLUMN_USAGE "
                "WHERE TABLE_SCHEMA = DATABASE() AND TABLE_NAME = :table "
                "AND CONSTRAINT_NAME = 'PRIMARY' ORDER BY ORDINAL_POSITION",
                {"table": name},
            )
        ]
        foreign_keys = self._read_foreign_keys(name)
        indexes = self._read_indexes(name)
        return self._build_table(name, columns, primary_key, foreign_keys, [], indexes)

    def read_view(self, name: str) -> ViewDescriptor:
        rows = self._rows(
            "SELECT VIEW_DEFINITION AS definition, DATABASE() AS db "
            "FROM information_schema.VIEWS "
            "WHERE TABLE_SCHEMA = DATABASE() AND TABLE_NAME = :name",
            {"name": name},
        )
        body = rows[0]["definition"] if rows else ""
        if rows and rows[0]["db"]:
            # Views are stored with schema-qualified names
            body = re.sub(rf"`{re.escape(rows[0]['db'])}`\.", "", body)
        return ViewDescriptor(
            name=name,
            definition=body.strip().rstrip(";"),
            source_dialect=self.dialect_name,
        )

    # ------------------------------------------------------------------
    # information_schema readers
    # ------------------------------------------------------------------

    def _read_columns(self, table: str) -> list[ColumnDescriptor]:
        rows = self._rows(
            "SELECT COLUMN_NAME AS name, DATA_TYPE AS data_type, COLUMN_TYPE AS column_type, "
            "CHARACTER_MAXIMUM_LENGTH AS max_length, NUMERIC_PRECISION AS num_precision, "
            "NUMERIC_SCALE AS num_scale, IS_NULLABLE AS is_nullable, "
            "COLUMN_DEFAULT AS column_default, EXTRA AS extra "
            "FROM information_schema.COLUMNS "
            "WHERE TABLE_SCHEMA = DATABASE() AND TABLE_NAME = :table "
            "ORDER BY ORDINAL_POSITION",
            {"table": table},
        )
        columns: list[ColumnDescriptor] = []
        for row in rows:
            semantic = mysql_semantic_type(row["data_type"], row["column_type"])
            extra = (row["extra"] or "").lower()
            columns.append(
                ColumnDescriptor(
                    name=row["name"],
                    semantic_type=semantic,
                    native_type=row["column_type"],
                    length=row["max_length"] if semantic == SemanticType.VARCHAR else None,
                    precision=row["num_precision"] if semantic == SemanticType.DECIMAL else None,
                    scale=row["num_scale"] if semantic == SemanticType.DECIMAL else None,
                    nullable=row["is_nullable"] == "YES",
                    default=self._column_default(row["column_default"], extra, semantic),
                    auto_increment="auto_increment" in extra,
                )
            )
        return columns

    def _column_default(
        self, raw: str | None, extra: str, semantic: SemanticType
    ) -> ColumnDefault | None:
        if raw is None:
            return None
        # MySQL 8 reports string literals unquoted; MariaDB quotes them
        if (
            semantic in STRING_TYPES
            and "default_generated" not in extra
            and not raw.startswith("'")
        ):
            return ColumnDefault(kind="literal", value=raw)
        return parse_default(raw, semantic)

    def _read_foreign_keys(self, table: str) -> list[ForeignKeyDescriptor]:
        rows = self._rows(
            "SELECT k.CONSTRAINT_NAME AS name, k.COLUMN_NAME AS column_name, "
            "k.REFERENCED_TABLE_NAME AS referenced_table, "
            "k.REFERENCED_COLUMN_NAME AS referenced_column, "
            "r.UPDATE_RULE AS on_update, r.DELETE_RULE AS on_delete "
            "FROM information_schema.KEY_COLUMN_USAGE k "
            "JOIN information_schema.REFERENTIAL_CONSTRAINTS r "
            "ON r.CONSTRAINT_SCHEMA = k.CONSTRAINT_SCHEMA "
            "AND r.CONSTRAINT_NAME = k.CONSTRAINT_NAME AND r.TABLE_NAME = k.TABLE_NAME "
            "WHERE k.TABLE_SCHEMA = DATABASE() AND k.TABLE_NAME = :table "
            "AND k.REFERENCED_TABLE_NAME IS NOT NULL "
            "ORDER BY k.CONSTRAINT_NAME, k.ORDINAL_POSITION",
            {"table": table},
        )
        grouped: dict[str, list[dict]] = defaultdict(list)
        for row in rows:
            grouped[row["name"]].append(row)

        return [
            ForeignKeyDescriptor(
                name=fk_name,
                columns=tuple(r["column_name"] for r in fk_rows),
                referenced_table=fk_rows[0]["referenced_table"],
                referenced_columns=tuple(r["referenced_column"] for r in fk_rows),
                on_delete=normalize_fk_action(fk_rows[0]["on_delete"]),
                on_update=normalize_fk_action(fk_rows[0]["on_update"]),
            )
            for fk_name, fk_rows in grouped.items()
        ]

    def _read_indexes(self, table: str) -> list[IndexDescriptor]:
        quoted = self.dialect.quote_identifier(table)
        grouped: dict[str, list[dict]] = defaultdict(list)
        for row in self._rows(f"SHOW INDEX FROM {quoted} WHERE Key_name != 'PRIMARY'"):
            grouped[row["Key_name"]].append(row)

        indexes: list[IndexDescriptor] = []
        for index_name in sorted(grouped):
            rows = sorted(grouped[index_name], key=lambda r: r["Seq_in_index"])
            columns = [r["Column_name"] for r in rows]
            if any(col is None for col in columns):
                logger.warning(f"Skipping functional index '{index_name}' on '{table}'")
                continue
            indexes.append(
                IndexDescriptor(
                    name=index_name,
                    table=table,
                    columns=tuple(columns),
                    is_unique=not int(rows[0]["Non_unique"]),
                )
            )
        return indexes
