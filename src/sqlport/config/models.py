"""Pydantic models for database configuration."""

from typing import Literal

from pydantic import BaseModel, Field, field_validator

from sqlport.dialects import normalize_dialect_name
from sqlport.dump.models import MAX_CHUNK_SIZE
from sqlport.schema.introspector import DEFAULT_TABLE_PREFIX


# ============================================================================
# Configuration Models
# ============================================================================


class DatabaseProfile(BaseModel):
    """Database connection profile from db.toml."""

    url: str
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution
    provider: str = ""  # Informational, e.g. "rds" or "docker"


class DumpDefaults(BaseModel):
    """``[dump]`` table of db.toml: defaults for the ``dump`` command."""

    target: str | None = None
    chunk_size: int = Field(default=100, ge=0, le=MAX_CHUNK_SIZE)
    conflict_mode: Literal["error", "ignore", "replace"] | None = None
    table_prefix: str = DEFAULT_TABLE_PREFIX
    include_header: bool = True
    include_schema: bool = True
    max_statements: int = Field(default=0, ge=0)

    @field_validator("target")
    @classmethod
    def _normalize_target(cls, value: str | None) -> str | None:
        return normalize_dialect_name(value) if value else None


class DatabaseConfig(BaseModel):
    """Complete database configuration from db.toml."""

    profiles: dict[str, DatabaseProfile] = Field(default_factory=dict)
    dump: DumpDefaults = Field(default_factory=DumpDefaults)
