"""sqlport: cross-database schema and data dumps.

Introspects a live SQLite, MySQL/MariaDB or PostgreSQL database and produces a
dependency-ordered, re-loadable SQL dump for any of the three engines.

Usage:
    from sqlport import DumpOptions, dump_database, load_dump, get_adapter
    from sqlport import SchemaIntrospector, resolve_order, get_dialect
    from sqlport import DumpError, CyclicDependencyError
"""

__version__ = "0.1.0"

# Adapters
from sqlport.adapters.base import DatabaseClient
from sqlport.adapters.sqlalchemy import SqlAlchemyAdapter

# Config
from sqlport.config.loader import load_db_config
from sqlport.config.models import DatabaseConfig, DatabaseProfile, DumpDefaults

# Dialects
from sqlport.dialects import (
    DialectStrategy,
    convert_identifier_quotes,
    get_dialect,
    map_type,
    quote_identifier,
)

# Dump
from sqlport.dump.models import DumpDocument, DumpOptions
from sqlport.dump.orchestrator import dump_database, generate_dump

# Errors
from sqlport.errors import (
    CyclicDependencyError,
    DumpError,
    IndexLimitExceededError,
    LoadError,
    MissingPrimaryKeyError,
    NotFoundError,
    ProfileNotFoundError,
    UnsupportedTypeError,
)

# Factory
from sqlport.factory import get_adapter, resolve_url

# Loader
from sqlport.loader import load_dump

# Schema
from sqlport.schema.dependencies import DependencyOrder, resolve_order
from sqlport.schema.introspector import SchemaIntrospector

__all__ = [
    # Adapters
    "DatabaseClient",
    "SqlAlchemyAdapter",
    # Config
    "load_db_config",
    "DatabaseConfig",
    "DatabaseProfile",
    "DumpDefaults",
    # Dialects
    "DialectStrategy",
    "get_dialect",
    "map_type",
    "quote_identifier",
    "convert_identifier_quotes",
    # Dump
    "DumpDocument",
    "DumpOptions",
    "dump_database",
    "generate_dump",
    # Errors
    "DumpError",
    "NotFoundError",
    "UnsupportedTypeError",
    "CyclicDependencyError",
    "IndexLimitExceededError",
    "MissingPrimaryKeyError",
    "LoadError",
    "ProfileNotFoundError",
    # Factory
    "get_adapter",
    "resolve_url",
    # Loader
    "load_dump",
    # Schema
    "DependencyOrder",
    "SchemaIntrospector",
    "resolve_order",
]
