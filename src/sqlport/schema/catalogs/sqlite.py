"""SQLite catalog reader (``sqlite_master`` + PRAGMAs)."""

import logging
import re
from collections import defaultdict

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

_VIEW_HEADER = re.compile(
    r"^\s*CREATE\s+(?:TEMP|TEMPORARY\s+)?VIEW\s+(?:IF\s+NOT\s+EXISTS\s+)?"
    r"(?:\"[^\"]*(?:\"\"[^\"]*)*\"|`[^`]*`|\[[^\]]*\]|[\w.]+)"
    r"\s*(?:\([^)]*\))?\s+AS\s+",
    re.IGNORECASE | re.DOTALL,
)
_LENGTH = re.compile(r"\(\s*(\d+)\s*(?:,\s*(\d+)\s*)?\)")


def sqlite_semantic_type(declared: str) -> tuple[SemanticType, int | None, int | None]:
    """Map a declared SQLite column type to a semantic type.

    Follows SQLite's affinity rules, checking the more specific spellings
    (boolean, timestamp, varchar with length) first.

    Returns:
        Tuple of (semantic type, length or precision, scale).
    """
    upper = declared.upper().strip()
    size = _LENGTH.search(upper)
    first = int(size.group(1)) if size else None
    second = int(size.group(2)) if size and size.group(2) else None

    if "BOOL" in upper:
        return SemanticType.BOOLEAN, None, None
    if "BIGINT" in upper or "INT8" in upper:
        return SemanticType.BIGINT, None, None
    if "INT" in upper:
        return SemanticType.INTEGER, None, None
    if "TIMESTAMP" in upper or "DATETIME" in upper:
        return SemanticType.TIMESTAMP, None, None
    if upper.startswith("DATE"):
        return SemanticType.DATE, None, None
    if "UUID" in upper:
        return SemanticType.UUID, None, None
    if "JSON" in upper:
        return SemanticType.JSON, None, None
    if "CHAR" in upper and first:
        return SemanticType.VARCHAR, first, None
    if "CHAR" in upper or "CLOB" in upper or "TEXT" in upper:
        return SemanticType.TEXT, None, None
    if "BLOB" in upper or not upper:
        return SemanticType.BLOB, None, None
    if "REAL" in upper or "FLOA" in upper or "DOUB" in upper:
        return SemanticType.FLOAT, None, None
    # Everything else has NUMERIC affinity
    return SemanticType.DECIMAL, first, second


class SqliteCatalog(CatalogReader):
    """Catalog reader for SQLite databases."""

    dialect_name = "sqlite"

    def list_tables(self) -> list[str]:
        rows = self._rows(
            "SELECT name FROM sqlite_master "
            "WHERE type = 'table' AND sql IS NOT NULL AND name NOT LIKE 'sqlite_%' "
            "ORDER BY name"
        )
        return [r["name"] for r in rows]

    def list_views(self) -> list[str]:
        rows = self._rows(
            "SELECT name FROM sqlite_master WHERE type = 'view' AND sql IS NOT NULL ORDER BY name"
        )
        return [r["name"] for r in rows]

    def read_table(self, name: str) -> tuple[TableDescriptor, list[IndexDescriptor]]:
        quoted = self.dialect.quote_identifier(name)
        info = self._rows(f"PRAGMA table_info({quoted})")

        pk_rows = sorted((r for r in info if r["pk"]), key=lambda r: r["pk"])
        primary_key = [r["name"] for r in pk_rows]

        columns: list[ColumnDescriptor] = []
        for row in info:
            declared = row["type"] or ""
            semantic, size, scale = sqlite_semantic_type(declared)
            # An INTEGER PRIMARY KEY aliases the rowid and auto-increments
            rowid_alias = primary_key == [row["name"]] and declared.upper() == "INTEGER"
            columns.append(
                ColumnDescriptor(
                    name=row["name"],
                    semantic_type=semantic,
                    native_type=declared,
                    length=size if semantic == SemanticType.VARCHAR else None,
                    precision=size if semantic == SemanticType.DECIMAL else None,
                    scale=scale if semantic == SemanticType.DECIMAL else None,
                    nullable=not row["notnull"] and not row["pk"],
                    default=parse_default(row["dflt_value"], semantic),
                    auto_increment=rowid_alias,
                )
            )

        foreign_keys = self._read_foreign_keys(name, quoted)
        unique_constraints, indexes = self._read_indexes(name, quoted)

        return self._build_table(
            name, columns, primary_key, foreign_keys, unique_constraints, indexes
        )

    def read_view(self, name: str) -> ViewDescriptor:
        rows = self._rows(
            "SELECT sql FROM sqlite_master WHERE type = 'view' AND name = :name",
            {"name": name},
        )
        sql = rows[0]["sql"] if rows else ""
        body = _VIEW_HEADER.sub("", sql, count=1).strip().rstrip(";").strip()
        return ViewDescriptor(name=name, definition=body, source_dialect=self.dialect_name)

    # ------------------------------------------------------------------
    # PRAGMA readers
    # ------------------------------------------------------------------

    def _read_foreign_keys(self, table: str, quoted: str) -> list[ForeignKeyDescriptor]:
        grouped: dict[int, list[dict]] = defaultdict(list)
        for row in self._rows(f"PRAGMA foreign_key_list({quoted})"):
            grouped[row["id"]].append(row)

        foreign_keys: list[ForeignKeyDescriptor] = []
        for fk_id in sorted(grouped):
            rows = sorted(grouped[fk_id], key=lambda r: r["seq"])
            referenced_table = rows[0]["table"]
            referenced_columns = [r["to"] for r in rows]
            if any(col is None for col in referenced_columns):
                # REFERENCES parent without a column list targets the parent's PK
                referenced_columns = self._primary_key_of(referenced_table)
            foreign_keys.append(
                ForeignKeyDescriptor(
                    name=f"{table}_{'_'.join(r['from'] for r in rows)}_foreign",
                    columns=tuple(r["from"] for r in rows),
                    referenced_table=referenced_table,
                    referenced_columns=tuple(referenced_columns),
                    on_delete=normalize_fk_action(rows[0]["on_delete"]),
                    on_update=normalize_fk_action(rows[0]["on_update"]),
                )
            )
        return foreign_keys

    def _read_indexes(
        self, table: str, quoted: str
    ) -> tuple[list[tuple[str, ...]], list[IndexDescriptor]]:
        unique_constraints: list[tuple[str, ...]] = []
        indexes: list[IndexDescriptor] = []

        for row in sorted(self._rows(f"PRAGMA index_list({quoted})"), key=lambda r: r["name"]):
            origin = row.get("origin", "c")
            if origin == "pk":
                continue
            info = self._rows(f"PRAGMA index_info({self.dialect.quote_identifier(row['name'])})")
            columns = [r["name"] for r in sorted(info, key=lambda r: r["seqno"])]
            if not columns or any(col is None for col in columns):
                logger.warning(f"Skipping expression index '{row['name']}' on '{table}'")
                continue
            if row.get("partial"):
                logger.warning(f"Skipping partial index '{row['name']}' on '{table}'")
                continue
            if origin == "u":
                unique_constraints.append(tuple(columns))
                continue
            indexes.append(
                IndexDescriptor(
                    name=row["name"],
                    table=table,
                    columns=tuple(columns),
                    is_unique=bool(row["unique"]),
                )
            )
        return unique_constraints, indexes

    def _primary_key_of(self, table: str) -> list[str]:
        info = self._rows(f"PRAGMA table_info({self.dialect.quote_identifier(table)})")
        return [r["name"] for r in sorted((r for r in info if r["pk"]), key=lambda r: r["pk"])]
