"""Schema introspection across SQLite, MySQL/MariaDB and PostgreSQL.

This module reads the live catalog of the connected engine and returns
engine-neutral descriptors:
- Tables: columns (with declared varchar length), primary key, foreign keys
- Views: SELECT body in the source dialect
- Indexes: name, ordered columns, uniqueness

The catalog reader is selected once from the connection's dialect.

Usage:
    from sqlport.schema.introspector import SchemaIntrospector

    with engine.connect() as conn:
        introspector = SchemaIntrospector(conn)
        snapshot = introspector.introspect(tables=["projects", "tasks"])
"""

import logging
from collections.abc import Sequence

from sqlalchemy import Connection
from sqlalchemy.exc import SQLAlchemyError

from sqlport.errors import DumpError, NotFoundError
from sqlport.schema.catalogs import CatalogReader, catalog_for
from sqlport.schema.models import CatalogSnapshot, IndexDescriptor, TableDescriptor, ViewDescriptor

logger = logging.getLogger(__name__)

DEFAULT_TABLE_PREFIX = "v4_"


class SchemaIntrospector:
    """Introspects the schema of one connected database.

    Args:
        connection: Open SQLAlchemy connection. Callers wanting a
            read-consistent dump open it inside a transaction.
        excluded_prefixes: Table-name prefixes never picked up by the naming
            convention (engine and migration bookkeeping tables).
        catalog: Catalog reader to use instead of selecting one from the
            connection's dialect.
    """

    EXCLUDED_PREFIXES: tuple[str, ...] = ("sqlite_", "knex_")

    def __init__(
        self,
        connection: Connection,
        excluded_prefixes: Sequence[str] | None = None,
        catalog: CatalogReader | None = None,
    ) -> None:
        self._catalog = catalog or catalog_for(connection)
        self._excluded = tuple(
            excluded_prefixes if excluded_prefixes is not None else self.EXCLUDED_PREFIXES
        )

    @property
    def source_dialect(self) -> str:
        return self._catalog.dialect_name

    # ------------------------------------------------------------------
    # Scoping
    # ------------------------------------------------------------------

    def select_tables(
        self,
        tables: Sequence[str] | None = None,
        table_prefix: str = DEFAULT_TABLE_PREFIX,
    ) -> list[str]:
        """Resolve which tables a dump covers.

        Args:
            tables: Explicit table names, kept in the given order.
            table_prefix: Naming-convention prefix used when ``tables`` is None.

        Returns:
            Table names.

        Raises:
            NotFoundError: If an explicitly requested table does not exist.
        """
        available = self._catalog.list_tables()
        if tables is None:
            return [
                name
                for name in available
                if name.startswith(table_prefix) and not name.startswith(self._excluded)
            ]

        existing = set(available)
        for name in tables:
            if name not in existing:
                raise NotFoundError("table", name)
        return list(dict.fromkeys(tables))

    def select_views(
        self,
        views: Sequence[str] | None = None,
        table_prefix: str = DEFAULT_TABLE_PREFIX,
    ) -> list[str]:
        """Resolve which views a dump covers (same rules as tables)."""
        available = self._catalog.list_views()
        if views is None:
            return [name for name in available if name.startswith(table_prefix)]

        existing = set(available)
        for name in views:
            if name not in existing:
                raise NotFoundError("view", name)
        return list(dict.fromkeys(views))

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def get_table(self, name: str) -> tuple[TableDescriptor, list[IndexDescriptor]]:
        """Read one table and its secondary indexes.

        Raises:
            DumpError: If the catalog query fails for this table.
        """
        logger.debug(f"Reading table '{name}' from {self.source_dialect} catalog")
        try:
            return self._catalog.read_table(name)
        except SQLAlchemyError as e:
            raise DumpError(f"Failed to introspect table '{name}': {e}", table=name) from e

    def get_view(self, name: str) -> ViewDescriptor:
        logger.debug(f"Reading view '{name}' from {self.source_dialect} catalog")
        try:
            return self._catalog.read_view(name)
        except SQLAlchemyError as e:
            raise DumpError(f"Failed to introspect view '{name}': {e}", table=name) from e

    def introspect(
        self,
        tables: Sequence[str] | None = None,
        views: Sequence[str] | None = None,
        table_prefix: str = DEFAULT_TABLE_PREFIX,
    ) -> CatalogSnapshot:
        """Introspect tables, views and indexes for one dump run.

        When ``tables`` is given explicitly, only explicitly listed ``views``
        are included; otherwise both follow the naming convention.

        Args:
            tables: Explicit table names, or None for the naming convention.
            views: Explicit view names.
            table_prefix: Naming-convention prefix.

        Returns:
            CatalogSnapshot with every selected object.

        Raises:
            NotFoundError: If an explicitly requested table or view is missing.
        """
        table_names = self.select_tables(tables, table_prefix)
        if views is None and tables is not None:
            view_names: list[str] = []
        else:
            view_names = self.select_views(views, table_prefix)

        table_descriptors: list[TableDescriptor] = []
        index_descriptors: list[IndexDescriptor] = []
        for name in table_names:
            table, indexes = self.get_table(name)
            table_descriptors.append(table)
            index_descriptors.extend(indexes)

        view_descriptors = [self.get_view(name) for name in view_names]

        logger.debug(
            f"Introspected {len(table_descriptors)} tables, {len(view_descriptors)} views, "
            f"{len(index_descriptors)} indexes"
        )
        return CatalogSnapshot(
            source_dialect=self.source_dialect,
            tables=tuple(table_descriptors),
            views=tuple(view_descriptors),
            indexes=tuple(index_descriptors),
        )
