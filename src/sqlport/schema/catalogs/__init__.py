"""Per-engine catalog readers.

Usage:
    from sqlport.schema.catalogs import catalog_for

    with engine.connect() as conn:
        catalog = catalog_for(conn)
        catalog.list_tables()
"""

from sqlalchemy import Connection

from sqlport.dialects import normalize_dialect_name
from sqlport.schema.catalogs.base import CatalogReader, parse_default
from sqlport.schema.catalogs.mysql import MySQLCatalog
from sqlport.schema.catalogs.postgresql import PostgresCatalog
from sqlport.schema.catalogs.sqlite import SqliteCatalog

CATALOGS: dict[str, type[CatalogReader]] = {
    "sqlite": SqliteCatalog,
    "mysql": MySQLCatalog,
    "postgresql": PostgresCatalog,
}


def catalog_for(connection: Connection) -> CatalogReader:
    """Select the catalog reader for a connection's engine.

    Raises:
        ValueError: If the engine is not SQLite, MySQL/MariaDB or PostgreSQL.
    """
    return CATALOGS[normalize_dialect_name(connection.dialect.name)](connection)


__all__ = [
    "CatalogReader",
    "SqliteCatalog",
    "MySQLCatalog",
    "PostgresCatalog",
    "CATALOGS",
    "catalog_for",
    "parse_default",
]
