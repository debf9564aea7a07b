"""Pydantic models for engine-neutral schema descriptors.

Descriptors are produced fresh by the introspector for every dump run and
are frozen once built. Dialect-specific spelling (type names, quoting) is
resolved only when DDL is generated.
"""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict


# ============================================================================
# Column Types and Defaults
# ============================================================================


class SemanticType(str, Enum):
    """Engine-neutral column type."""

    INTEGER = "integer"
    BIGINT = "bigint"
    VARCHAR = "varchar"
    TEXT = "text"
    BOOLEAN = "boolean"
    TIMESTAMP = "timestamp"
    DATE = "date"
    FLOAT = "float"
    DECIMAL = "decimal"
    BLOB = "blob"
    JSON = "json"
    UUID = "uuid"
    UNKNOWN = "unknown"


STRING_TYPES = frozenset({SemanticType.VARCHAR, SemanticType.TEXT})
NUMERIC_TYPES = frozenset(
    {SemanticType.INTEGER, SemanticType.BIGINT, SemanticType.FLOAT, SemanticType.DECIMAL}
)


class ColumnDefault(BaseModel):
    """Normalized column default.

    ``literal`` values are rendered with the same formatter as row data;
    ``current_timestamp`` and ``current_epoch`` are rendered per dialect;
    ``expression`` is passed through verbatim.

    Example:
        >>> ColumnDefault(kind="literal", value="draft")
        >>> ColumnDefault(kind="current_timestamp")
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["literal", "current_timestamp", "current_epoch", "expression"]
    value: str | int | float | bool | None = None


# ============================================================================
# Descriptors
# ============================================================================


class ColumnDescriptor(BaseModel):
    """Schema for a table column.

    Example:
        >>> col = ColumnDescriptor(
        ...     name="title", semantic_type=SemanticType.VARCHAR, length=255,
        ...     nullable=False,
        ... )
        >>> col.type_label
        'varchar(255)'
    """

    model_config = ConfigDict(frozen=True)

    name: str
    semantic_type: SemanticType
    native_type: str = ""
    length: int | None = None  # Declared length for varchar
    precision: int | None = None
    scale: int | None = None
    nullable: bool = True
    default: ColumnDefault | None = None
    auto_increment: bool = False
    unique: bool = False  # Single-column UNIQUE declared at table level

    @property
    def type_label(self) -> str:
        """Semantic type with its length, for messages and CLI output."""
        if self.semantic_type == SemanticType.VARCHAR and self.length:
            return f"varchar({self.length})"
        if self.semantic_type == SemanticType.UNKNOWN:
            return self.native_type or "unknown"
        return self.semantic_type.value


class ForeignKeyDescriptor(BaseModel):
    """Schema for a foreign key constraint.

    Composite keys keep their column order in ``columns`` and
    ``referenced_columns``.
    """

    model_config = ConfigDict(frozen=True)

    name: str = ""
    columns: tuple[str, ...]
    referenced_table: str
    referenced_columns: tuple[str, ...]
    on_delete: str | None = None
    on_update: str | None = None

    @property
    def column(self) -> str:
        return self.columns[0]

    @property
    def referenced_column(self) -> str:
        return self.referenced_columns[0]


class IndexDescriptor(BaseModel):
    """Schema for a secondary index."""

    model_config = ConfigDict(frozen=True)

    name: str
    table: str
    columns: tuple[str, ...]
    is_unique: bool = False


class TableDescriptor(BaseModel):
    """Schema for a base table.

    Example:
        >>> table.column("id").auto_increment
        True
        >>> table.has_primary_key
        True
    """

    model_config = ConfigDict(frozen=True)

    name: str
    columns: tuple[ColumnDescriptor, ...]
    primary_key: tuple[str, ...] = ()
    foreign_keys: tuple[ForeignKeyDescriptor, ...] = ()
    unique_constraints: tuple[tuple[str, ...], ...] = ()  # Multi-column only

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    @property
    def has_primary_key(self) -> bool:
        return bool(self.primary_key)

    def column(self, name: str) -> ColumnDescriptor:
        """Look up a column by name.

        Raises:
            KeyError: If the table has no such column.
        """
        for col in self.columns:
            if col.name == name:
                return col
        raise KeyError(f"Column '{name}' not found in table '{self.name}'")


class ViewDescriptor(BaseModel):
    """Schema for a view: its name and SELECT body in the source dialect."""

    model_config = ConfigDict(frozen=True)

    name: str
    definition: str
    source_dialect: str


class CatalogSnapshot(BaseModel):
    """Everything the introspector read for one dump run."""

    model_config = ConfigDict(frozen=True)

    source_dialect: str
    tables: tuple[TableDescriptor, ...] = ()
    views: tuple[ViewDescriptor, ...] = ()
    indexes: tuple[IndexDescriptor, ...] = ()

    def table(self, name: str) -> TableDescriptor:
        for table in self.tables:
            if table.name == name:
                return table
        raise KeyError(f"Table '{name}' not in snapshot")

    def indexes_for(self, table: str) -> list[IndexDescriptor]:
        return [idx for idx in self.indexes if idx.table == table]
