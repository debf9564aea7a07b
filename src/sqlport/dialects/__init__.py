"""Dialect strategies: type, identifier and literal spelling per engine.

Usage:
    from sqlport.dialects import get_dialect, map_type, quote_identifier

    mysql = get_dialect("mysql")
    mysql.quote_identifier("tasks")                       # '`tasks`'
    map_type(SemanticType.BOOLEAN, "postgresql")          # 'BOOLEAN'
    quote_identifier("order", "sqlite")                   # '"order"'
    convert_identifier_quotes('SELECT "id" FROM "t"', "postgresql", "mysql")
"""

from sqlport.dialects.base import ConflictMode, DialectStrategy
from sqlport.dialects.mysql import MySQLDialect
from sqlport.dialects.postgresql import PostgresDialect
from sqlport.dialects.sqlite import SqliteDialect
from sqlport.schema.models import SemanticType

DIALECTS: dict[str, type[DialectStrategy]] = {
    "sqlite": SqliteDialect,
    "mysql": MySQLDialect,
    "postgresql": PostgresDialect,
}

_ALIASES = {
    "sqlite3": "sqlite",
    "mariadb": "mysql",
    "postgres": "postgresql",
    "pg": "postgresql",
}


def normalize_dialect_name(name: str) -> str:
    """Map engine/driver spellings to ``sqlite``, ``mysql`` or ``postgresql``.

    Raises:
        ValueError: If the name is not a supported dialect.
    """
    key = name.lower().split("+", 1)[0]
    key = _ALIASES.get(key, key)
    if key not in DIALECTS:
        raise ValueError(
            f"Unsupported dialect '{name}'. Supported: {', '.join(DIALECTS)}"
        )
    return key


def get_dialect(name: str | DialectStrategy) -> DialectStrategy:
    """Return the strategy for a dialect name (or pass a strategy through)."""
    if isinstance(name, DialectStrategy):
        return name
    return DIALECTS[normalize_dialect_name(name)]()


def map_type(
    semantic_type: SemanticType,
    dialect: str | DialectStrategy,
    length: int | None = None,
    precision: int | None = None,
    scale: int | None = None,
) -> str:
    """Spell a semantic type for a target dialect."""
    return get_dialect(dialect).map_type(semantic_type, length, precision, scale)


def quote_identifier(name: str, dialect: str | DialectStrategy) -> str:
    """Quote an identifier for a target dialect."""
    return get_dialect(dialect).quote_identifier(name)


def convert_identifier_quotes(
    sql: str,
    source: str | DialectStrategy,
    target: str | DialectStrategy,
) -> str:
    """Rewrite quoted identifiers in SQL text from one dialect's style to another's."""
    return get_dialect(target).convert_identifier_quotes(sql, get_dialect(source))


__all__ = [
    "ConflictMode",
    "DialectStrategy",
    "SqliteDialect",
    "MySQLDialect",
    "PostgresDialect",
    "DIALECTS",
    "normalize_dialect_name",
    "get_dialect",
    "map_type",
    "quote_identifier",
    "convert_identifier_quotes",
]
