"""Configuration: db.toml profiles and dump defaults.

Usage:
    from sqlport.config import load_db_config

    config = load_db_config(Path("db.toml"))
    config.profiles["local"].url
    config.dump.chunk_size
"""

from sqlport.config.loader import DEFAULT_CONFIG_FILE, load_db_config
from sqlport.config.models import DatabaseConfig, DatabaseProfile, DumpDefaults

__all__ = [
    "DEFAULT_CONFIG_FILE",
    "DatabaseConfig",
    "DatabaseProfile",
    "DumpDefaults",
    "load_db_config",
]
