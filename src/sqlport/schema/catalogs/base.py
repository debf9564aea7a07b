"""Shared behaviour for per-engine catalog readers."""

import logging
import re
from abc import ABC, abstractmethod
from typing import Any

from sqlalchemy import Connection, text

from sqlport.dialects import DialectStrategy, get_dialect
from sqlport.dialects.literals import coerce_bool
from sqlport.schema.models import (
    ColumnDefault,
    ColumnDescriptor,
    ForeignKeyDescriptor,
    IndexDescriptor,
    SemanticType,
    TableDescriptor,
    ViewDescriptor,
)

logger = logging.getLogger(__name__)

_NOW_PATTERNS = re.compile(
    r"""^(
        current_timestamp(\(\d*\))?
        | now\(\)
        | localtimestamp(\(\d*\))?
        | (transaction|statement|clock)_timestamp\(\)
        | datetime\(\s*'now'\s*(,\s*'localtime'\s*)?\)
        | strftime\(\s*'%Y-%m-%d[ T]%H:%M:%f?S?'\s*,\s*'now'\s*\)
    )$""",
    re.IGNORECASE | re.VERBOSE,
)
_EPOCH_PATTERNS = re.compile(
    r"""^(
        unixepoch\((\s*'now'\s*)?\)
        | strftime\(\s*'%s'\s*,\s*'now'\s*\)
        | cast\(\s*strftime\(\s*'%s'\s*,\s*'now'\s*\)\s+as\s+integer\s*\)
        | unix_timestamp\(\)
        | cast\(\s*unix_timestamp\(\)\s+as\s+(signed|unsigned)\s*\)
        | extract\(\s*epoch\s+from\s+(now\(\)|current_timestamp)\s*\)
        | date_part\(\s*'epoch'\s*,\s*(now\(\)|current_timestamp)\s*\)
    )$""",
    re.IGNORECASE | re.VERBOSE,
)
_NUMERIC_LITERAL = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")
_TRAILING_CAST = re.compile(r"::[A-Za-z_][\w\s\"]*(\(\d+(,\s*\d+)?\))?(\[\])*$")

_FK_ACTIONS = {
    "CASCADE": "CASCADE",
    "RESTRICT": "RESTRICT",
    "SET NULL": "SET NULL",
    "SET DEFAULT": "SET DEFAULT",
    "NO ACTION": "NO ACTION",
}


class CatalogReader(ABC):
    """Reads one engine's system catalog into descriptors.

    Subclasses answer the catalog questions with their engine's own
    facilities; the shared helpers here normalize the answers.

    Args:
        connection: Open SQLAlchemy connection to the source database.
    """

    dialect_name: str
    # True where the catalog cannot tell a UNIQUE constraint from a unique index
    unique_indexes_are_constraints: bool = False

    def __init__(self, connection: Connection) -> None:
        self._conn = connection
        self.dialect: DialectStrategy = get_dialect(self.dialect_name)

    # ------------------------------------------------------------------
    # Catalog questions
    # ------------------------------------------------------------------

    @abstractmethod
    def list_tables(self) -> list[str]:
        """Base table names, sorted."""

    @abstractmethod
    def list_views(self) -> list[str]:
        """View names, sorted."""

    @abstractmethod
    def read_table(self, name: str) -> tuple[TableDescriptor, list[IndexDescriptor]]:
        """Table descriptor plus its secondary indexes (PK excluded)."""

    @abstractmethod
    def read_view(self, name: str) -> ViewDescriptor:
        """View descriptor with the SELECT body in source syntax."""

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _rows(self, sql: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        """Run a catalog query and return rows as dicts."""
        result = self._conn.execute(text(sql), params or {})
        return [dict(row) for row in result.mappings()]

    def _build_table(
        self,
        name: str,
        columns: list[ColumnDescriptor],
        primary_key: list[str],
        foreign_keys: list[ForeignKeyDescriptor],
        unique_constraints: list[tuple[str, ...]],
        indexes: list[IndexDescriptor],
    ) -> tuple[TableDescriptor, list[IndexDescriptor]]:
        """Assemble a table, flagging single-column UNIQUE columns.

        Single-column unique constraints mark the column ``unique``. A
        standalone unique index keeps its name and stays an index, except on
        engines whose catalog reports constraints only as indexes; there the
        index also marks the column and generation suppresses it.
        """
        single_unique = {uc[0] for uc in unique_constraints if len(uc) == 1}
        if self.unique_indexes_are_constraints:
            single_unique |= {
                idx.columns[0] for idx in indexes if idx.is_unique and len(idx.columns) == 1
            }
        if len(primary_key) == 1:
            single_unique.discard(primary_key[0])

        columns = [
            col.model_copy(update={"unique": True}) if col.name in single_unique else col
            for col in columns
        ]
        table = TableDescriptor(
            name=name,
            columns=tuple(columns),
            primary_key=tuple(primary_key),
            foreign_keys=tuple(foreign_keys),
            unique_constraints=tuple(uc for uc in unique_constraints if len(uc) > 1),
        )
        return table, indexes


def parse_default(raw: str | None, semantic_type: SemanticType) -> ColumnDefault | None:
    """Normalize a catalog default expression into a ``ColumnDefault``.

    Handles the spellings the three engines report: quoted literals,
    numbers, booleans, the various "now" functions and Unix-epoch
    expressions. Anything else is kept as an expression.

    Example:
        >>> parse_default("'draft'::character varying", SemanticType.VARCHAR)
        ColumnDefault(kind='literal', value='draft')
        >>> parse_default("(datetime('now'))", SemanticType.TIMESTAMP)
        ColumnDefault(kind='current_timestamp', value=None)
    """
    if raw is None:
        return None
    expr = _strip_parens(raw.strip())
    while _TRAILING_CAST.search(expr):
        stripped = _strip_parens(_TRAILING_CAST.sub("", expr).strip())
        if stripped == expr:
            break
        expr = stripped

    if not expr or expr.upper() == "NULL":
        return None
    if _NOW_PATTERNS.match(expr):
        return ColumnDefault(kind="current_timestamp")
    if _EPOCH_PATTERNS.match(expr):
        return ColumnDefault(kind="current_epoch")

    value: str | int | float | bool
    if _is_single_string_literal(expr):
        value = expr[1:-1].replace("''", "'")
    elif expr.upper() in ("TRUE", "FALSE"):
        value = expr.upper() == "TRUE"
    elif _NUMERIC_LITERAL.match(expr):
        value = float(expr) if any(ch in expr for ch in ".eE") else int(expr)
    else:
        logger.debug(f"Keeping default {raw!r} as an expression")
        return ColumnDefault(kind="expression", value=expr)

    if semantic_type == SemanticType.BOOLEAN:
        try:
            value = coerce_bool(value)
        except ValueError:
            logger.warning(f"Boolean column default {raw!r} is not a boolean; keeping as text")
    return ColumnDefault(kind="literal", value=value)


def normalize_fk_action(action: str | None) -> str | None:
    """Normalize a referential action; ``NO ACTION`` and unknowns become None."""
    if not action:
        return None
    normalized = _FK_ACTIONS.get(action.strip().upper())
    if normalized in (None, "NO ACTION"):
        return None
    return normalized


def _strip_parens(expr: str) -> str:
    while expr.startswith("(") and expr.endswith(")") and _balanced(expr[1:-1]):
        expr = expr[1:-1].strip()
    return expr


def _balanced(expr: str) -> bool:
    depth = 0
    in_string = False
    for ch in expr:
        if ch == "'":
            in_string = not in_string
        elif not in_string:
            if ch == "(":
                depth += 1
            elif ch == ")":
                depth -= 1
                if depth < 0:
                    return False
    return depth == 0


def _is_single_string_literal(expr: str) -> bool:
    if len(expr) < 2 or not (expr.startswith("'") and expr.endswith("'")):
        return False
    return "'" not in expr[1:-1].replace("''", "")
