"""Configuration loading from db.toml."""

import tomllib
from pathlib import Path

from pydantic import ValidationError

from sqlport.config.models import DatabaseConfig, DatabaseProfile, DumpDefaults

DEFAULT_CONFIG_FILE = "db.toml"


def load_db_config(config_path: Path | None = None) -> DatabaseConfig:
    """Load database configuration from TOML file.

    Args:
        config_path: Path to db.toml (default: ./db.toml)

    Returns:
        DatabaseConfig with all profiles and dump defaults

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config format is invalid
    """
    if config_path is None:
        config_path = Path.cwd() / DEFAULT_CONFIG_FILE

    if not config_path.exists():
        raise FileNotFoundError(
            f"Database config not found: {config_path}\n"
            f"Create db.toml with a [profiles.<name>] table, or pass --config."
        )

    with open(config_path, "rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"Invalid TOML in {config_path}: {e}") from e

    try:
        # Parse profiles
        profiles = {}
        for name, profile_data in data.get("profiles", {}).items():
            profiles[name] = DatabaseProfile(**profile_data)

        # Parse dump defaults
        dump = DumpDefaults(**data.get("dump", {}))
    except (ValidationError, TypeError) as e:
        raise ValueError(f"Invalid database config in {config_path}: {e}") from e

    return DatabaseConfig(profiles=profiles, dump=dump)
