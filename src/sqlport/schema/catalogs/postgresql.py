"""PostgreSQL catalog reader (``pg_catalog`` + ``information_schema``)."""

import logging

from sqlalchemy import Connection

from sqlport.schema.catalogs.base import CatalogReader, normalize_fk_action, parse_default
from sqlport.schema.models import (
    ColumnDescriptor,
    ForeignKeyDescriptor,
    IndexDescriptor,
    SemanticType,
    TableDescriptor,
    ViewDescriptor,
)

logger = logging.getLogger(__name__)

_TYPE_MAP: dict[str, SemanticType] = {
    "smallint": SemanticType.INTEGER,
    "integer": SemanticType.INTEGER,
    "bigint": SemanticType.BIGINT,
    "character varying": SemanticType.VARCHAR,
    "character": SemanticType.VARCHAR,
    "text": SemanticType.TEXT,
    "boolean": SemanticType.BOOLEAN,
    "timestamp without time zone": SemanticType.TIMESTAMP,
    "timestamp with time zone": SemanticType.TIMESTAMP,
    "date": SemanticType.DATE,
    "real": SemanticType.FLOAT,
    "double precision": SemanticType.FLOAT,
    "numeric": SemanticType.DECIMAL,
    "bytea": SemanticType.BLOB,
    "json": SemanticType.JSON,
    "jsonb": SemanticType.JSON,
    "uuid": SemanticType.UUID,
}

# confupdtype / confdeltype codes
_ACTION_CODES = {
    "a": "NO ACTION",
    "r": "RESTRICT",
    "c": "CASCADE",
    "n": "SET NULL",
    "d": "SET DEFAULT",
}


class PostgresCatalog(CatalogReader):
    """Catalog reader for PostgreSQL.

    Args:
        connection: Open SQLAlchemy connection.
        schema_name: PostgreSQL schema to read (default: public).
    """

    dialect_name = "postgresql"

    def __init__(self, connection: Connection, schema_name: str = "public") -> None:
        super().__init__(connection)
        self.schema_name = schema_name

    def list_tables(self) -> list[str]:
        rows = self._rows(
            "SELECT tablename AS name FROM pg_catalog.pg_tables "
            "WHERE schemaname = :schema ORDER BY tablename",
            {"schema": self.schema_name},
        )
        return [r["name"] for r in rows]

    def list_views(self) -> list[str]:
        rows = self._rows(
            "SELECT viewname AS name FROM pg_catalog.pg_views "
            "WHERE schemaname = :schema ORDER BY viewname",
            {"schema": self.schema_name},
        )
        return [r["name"] for r in rows]

    def read_table(self, name: str) -> tuple[TableDescriptor, list[IndexDescriptor]]:
        columns = self._read_columns(name)
        primary_key: list[str] = []
        unique_constraints: list[tuple[str, ...]] = []
        foreign_keys: list[ForeignKeyDescriptor] = []

        for row in self._read_constraints(name):
            cols = list(row["columns"])
            if row["contype"] == "p":
                primary_key = cols
            elif row["contype"] == "u":
                unique_constraints.append(tuple(cols))
            else:
                foreign_keys.append(
                    ForeignKeyDescriptor(
                        name=row["conname"],
                        columns=tuple(cols),
                        referenced_table=row["referenced_table"],
                        referenced_columns=tuple(row["referenced_columns"]),
                        on_delete=normalize_fk_action(_ACTION_CODES.get(row["confdeltype"])),
                        on_update=normalize_fk_action(_ACTION_CODES.get(row["confupdtype"])),
                    )
                )

        indexes = self._read_indexes(name)
        return self._build_table(
            name, columns, primary_key, foreign_keys, unique_constraints, indexes
        )

    def read_view(self, name: str) -> ViewDescriptor:
        rows = self._rows(
            "SELECT definition FROM pg_catalog.pg_views "
            "WHERE schemaname = :schema AND viewname = :name",
            {"schema": self.schema_name, "name": name},
        )
        body = (rows[0]["definition"] or "") if rows else ""
        return ViewDescriptor(
            name=name,
            definition=body.strip().rstrip(";").strip(),
            source_dialect=self.dialect_name,
        )

    # ------------------------------------------------------------------
    # Catalog queries
    # ------------------------------------------------------------------

    def _read_columns(self, table: str) -> list[ColumnDescriptor]:
        rows = self._rows(
            """
            SELECT column_name, data_type, udt_name, character_maximum_length,
                   numeric_precision, numeric_scale, is_nullable, column_default,
                   is_identity
            FROM information_schema.columns
            WHERE table_schema = :schema AND table_name = :table
            ORDER BY ordinal_position
            """,
            {"schema": self.schema_name, "table": table},
        )
        columns: list[ColumnDescriptor] = []
        for row in rows:
            semantic = _TYPE_MAP.get(row["data_type"], SemanticType.UNKNOWN)
            length = row["character_maximum_length"]
            if semantic == SemanticType.VARCHAR and not length:
                semantic = SemanticType.TEXT
            raw_default = row["column_default"]
            sequence_backed = bool(raw_default and raw_default.startswith("nextval("))
            auto_increment = sequence_backed or row["is_identity"] == "YES"
            columns.append(
                ColumnDescriptor(
                    name=row["column_name"],
                    semantic_type=semantic,
                    native_type=row["udt_name"] or row["data_type"],
                    length=length if semantic == SemanticType.VARCHAR else None,
                    precision=row["numeric_precision"] if semantic == SemanticType.DECIMAL else None,
                    scale=row["numeric_scale"] if semantic == SemanticType.DECIMAL else None,
                    nullable=row["is_nullable"] == "YES",
                    default=None if auto_increment else parse_default(raw_default, semantic),
                    auto_increment=auto_increment,
                )
            )
        return columns

    def _read_constraints(self, table: str) -> list[dict]:
        return self._rows(
            """
            SELECT
                c.conname,
                c.contype,
                c.confupdtype,
                c.confdeltype,
                ft.relname AS referenced_table,
                ARRAY(
                    SELECT a.attname
                    FROM unnest(c.conkey) WITH ORDINALITY AS k(attnum, ord)
                    JOIN pg_attribute a ON a.attrelid = c.conrelid AND a.attnum = k.attnum
                    ORDER BY k.ord
                ) AS columns,
                ARRAY(
                    SELECT a.attname
                    FROM unnest(c.confkey) WITH ORDINALITY AS k(attnum, ord)
                    JOIN pg_attribute a ON a.attrelid = c.confrelid AND a.attnum = k.attnum
                    ORDER BY k.ord
                ) AS referenced_columns
            FROM pg_constraint c
            JOIN pg_class t ON t.oid = c.conrelid
            JOIN pg_namespace n ON n.oid = t.relnamespace
            LEFT JOIN pg_class ft ON ft.oid = c.confrelid
            WHERE n.nspname = :schema
              AND t.relname = :table
              AND c.contype IN ('p', 'u', 'f')
            ORDER BY c.contype, c.conname
            """,
            {"schema": self.schema_name, "table": table},
        )

    def _read_indexes(self, table: str) -> list[IndexDescriptor]:
        """Secondary indexes not owned by a PK/UNIQUE constraint."""
        rows = self._rows(
            """
            SELECT
                i.relname AS index_name,
                array_agg(a.attname ORDER BY x.ordinality) AS columns,
                ix.indisunique AS is_unique,
                bool_or(x.attnum = 0) AS has_expression,
                ix.indpred IS NOT NULL AS is_partial
            FROM pg_index ix
            JOIN pg_class t ON t.oid = ix.indrelid
            JOIN pg_class i ON i.oid = ix.indexrelid
            JOIN pg_namespace n ON n.oid = t.relnamespace
            JOIN LATERAL unnest(ix.indkey) WITH ORDINALITY AS x(attnum, ordinality) ON TRUE
            LEFT JOIN pg_attribute a ON a.attrelid = t.oid AND a.attnum = x.attnum
            WHERE n.nspname = :schema
              AND t.relname = :table
              AND NOT ix.indisprimary
              AND NOT EXISTS (
                  SELECT 1 FROM pg_constraint c
                  WHERE c.conindid = ix.indexrelid AND c.contype IN ('p', 'u', 'x')
              )
            GROUP BY i.relname, ix.indisunique, ix.indpred IS NOT NULL
            ORDER BY i.relname
            """,
            {"schema": self.schema_name, "table": table},
        )
        indexes: list[IndexDescriptor] = []
        for row in rows:
            if row["has_expression"] or row["is_partial"]:
                logger.warning(
                    f"Skipping expression/partial index '{row['index_name']}' on '{table}'"
                )
                continue
            indexes.append(
                IndexDescriptor(
                    name=row["index_name"],
                    table=table,
                    columns=tuple(row["columns"]),
                    is_unique=row["is_unique"],
                )
            )
        return indexes
