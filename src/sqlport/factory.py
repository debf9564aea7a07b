"""Database client factory.

Resolves a db.toml profile to a connection URL and builds an adapter for it.

Profile selection priority:
1. Explicit ``profile_name`` argument (``--profile``)
2. ``{env_prefix}DB_PROFILE`` environment variable
3. Raise ProfileNotFoundError
"""

import os
from pathlib import Path
from urllib.parse import quote

from sqlport.adapters import SqlAlchemyAdapter
from sqlport.config import DatabaseProfile, load_db_config
from sqlport.errors import ProfileNotFoundError

PASSWORD_PLACEHOLDER = "[YOUR-PASSWORD]"


# ============================================================================
# Profile Resolution
# ============================================================================


def get_active_profile_name(env_prefix: str = "", profile_name: str | None = None) -> str:
    """Get active profile name from an explicit name or env var.

    Args:
        env_prefix: Prefix for the env var (``APP_`` reads ``APP_DB_PROFILE``).
        profile_name: Explicit profile name; wins over the environment.

    Returns:
        Profile name

    Raises:
        ProfileNotFoundError: If no profile is configured
    """
    if profile_name:
        return profile_name

    env_var = f"{env_prefix}DB_PROFILE"
    env_profile = os.environ.get(env_var)
    if env_profile:
        return env_profile

    raise ProfileNotFoundError(
        "No database profile configured.\n"
        f"Pass --profile <name> or set {env_var}=<name>."
    )


def get_active_profile(
    env_prefix: str = "",
    profile_name: str | None = None,
    config_path: Path | None = None,
) -> tuple[str, DatabaseProfile]:
    """Get active profile name and configuration.

    Returns:
        Tuple of (profile_name, DatabaseProfile)

    Raises:
        ProfileNotFoundError: If no profile configured, or the named profile
            is not in db.toml
        FileNotFoundError: If db.toml does not exist
    """
    name = get_active_profile_name(env_prefix=env_prefix, profile_name=profile_name)
    config = load_db_config(config_path)

    if name not in config.profiles:
        available = ", ".join(config.profiles.keys()) or "(none)"
        raise ProfileNotFoundError(
            f"Profile '{name}' not found in db.toml.\nAvailable profiles: {available}"
        )

    return name, config.profiles[name]


def resolve_url(profile: DatabaseProfile) -> str:
    """Resolve profile URL with password substitution.

    Args:
        profile: Database profile from config

    Returns:
        Connection URL with password substituted

    Example:
        >>> resolve_url(DatabaseProfile(url="postgresql://app:[YOUR-PASSWORD]@db/app",
        ...                             db_password="p@ss"))
        'postgresql://app:p%40ss@db/app'
    """
    url = profile.url
    if profile.db_password and PASSWORD_PLACEHOLDER in url:
        url = url.replace(PASSWORD_PLACEHOLDER, quote(profile.db_password, safe=""))
    return url


# ============================================================================
# Database Adapter Factory
# ============================================================================


def get_adapter(
    profile_name: str | None = None,
    env_prefix: str = "",
    config_path: Path | None = None,
) -> SqlAlchemyAdapter:
    """Build an adapter for the active profile.

    Args:
        profile_name: Profile name from db.toml. If None, uses
            ``{env_prefix}DB_PROFILE``.
        env_prefix: Prefix for environment variable lookup.
        config_path: Path to db.toml (default: ./db.toml).

    Returns:
        SqlAlchemyAdapter connected to the profile's database.

    Raises:
        ProfileNotFoundError: If no profile is configured or found
        FileNotFoundError: If db.toml does not exist

    Example:
        >>> adapter = get_adapter("local")
        >>> adapter.execute("SELECT COUNT(*) AS n FROM v4_tasks")
        [{'n': 12}]
    """
    _, profile = get_active_profile(
        env_prefix=env_prefix, profile_name=profile_name, config_path=config_path
    )
    return SqlAlchemyAdapter(resolve_url(profile))
