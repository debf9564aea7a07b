"""Pydantic models for dump options and the dump document."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sqlport.dialects import normalize_dialect_name
from sqlport.schema.introspector import DEFAULT_TABLE_PREFIX

MAX_CHUNK_SIZE = 10000


# ============================================================================
# Options
# ============================================================================


class DumpOptions(BaseModel):
    """Options for one dump run.

    Every scoping decision (tables, views, row filters) is an explicit field.

    Example:
        >>> DumpOptions(target_dialect="postgresql", tables=["projects", "tasks"])
        >>> DumpOptions(target_dialect="mysql", chunk_size=0)  # schema only
    """

    model_config = ConfigDict(frozen=True)

    target_dialect: Literal["sqlite", "mysql", "postgresql"]
    include_header: bool = True
    include_schema: bool = True
    chunk_size: int = Field(default=100, ge=0, le=MAX_CHUNK_SIZE)  # 0 = schema only
    conflict_mode: Literal["error", "ignore", "replace"] = "error"
    tables: list[str] | None = None
    views: list[str] | None = None
    table_prefix: str = DEFAULT_TABLE_PREFIX
    table_filters: dict[str, dict[str, Any]] = Field(default_factory=dict)
    cycle_policy: Literal["error", "defer"] = "error"
    generated_at: datetime | None = None  # Header date; omitted for byte-stable output

    @field_validator("target_dialect", mode="before")
    @classmethod
    def _normalize_target(cls, value: Any) -> Any:
        return normalize_dialect_name(value) if isinstance(value, str) else value

    @property
    def include_data(self) -> bool:
        return self.chunk_size > 0


# ============================================================================
# Document
# ============================================================================


class Statement(BaseModel):
    """One SQL statement with an optional leading comment.

    A statement with an empty ``sql`` is a comment-only entry.
    """

    model_config = ConfigDict(frozen=True)

    sql: str = ""
    comment: str | None = None

    @property
    def is_executable(self) -> bool:
        return bool(self.sql)

    def render(self) -> str:
        lines = [f"-- {line}" for line in (self.comment or "").splitlines()]
        if self.sql:
            lines.append(self.sql)
        return "\n".join(lines)


class StatementGroup(BaseModel):
    """A named section of the document.

    ``compact`` groups render one entry per line; others separate entries
    with a blank line.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    title: str | None = None
    statements: tuple[Statement, ...] = ()
    compact: bool = False

    def render(self) -> str:
        parts: list[str] = []
        if self.title:
            parts.append(f"-- {'=' * 44}\n-- {self.title}\n-- {'=' * 44}")
        separator = "\n" if self.compact else "\n\n"
        parts.append(separator.join(s.render() for s in self.statements))
        return "\n\n".join(p for p in parts if p)


CONTROL_GROUPS = ("disable_fk_checks", "begin", "commit", "enable_fk_checks")


class DumpDocument(BaseModel):
    """The finished dump: an ordered, immutable sequence of statement groups.

    Example:
        document = generate_dump(conn, options)
        Path("dump.sql").write_text(document.render())
        document.statement_count
        # 12
    """

    model_config = ConfigDict(frozen=True)

    source_dialect: str
    target_dialect: str
    groups: tuple[StatementGroup, ...] = ()

    def group(self, name: str) -> StatementGroup | None:
        for group in self.groups:
            if group.name == name:
                return group
        return None

    @property
    def statements(self) -> list[str]:
        """Executable SQL statements in document order."""
        return [s.sql for g in self.groups for s in g.statements if s.is_executable]

    @property
    def statement_count(self) -> int:
        return len(self.statements)

    def render(self) -> str:
        return "\n\n".join(g.render() for g in self.groups if g.statements) + "\n"

    def split(self, max_statements: int) -> list[str]:
        """Render the document as parts of at most ``max_statements`` statements.

        Every part repeats the header and wraps its body in the FK-check and
        transaction control statements, so each part loads on its own.

        Args:
            max_statements: Body statements per part; 0 disables splitting.

        Returns:
            Rendered parts in load order.
        """
        if max_statements <= 0:
            return [self.render()]

        header = self.group("header")
        controls = {g.name: g for g in self.groups if g.name in CONTROL_GROUPS}
        body = [
            s
            for g in self.groups
            if g.name != "header" and g.name not in CONTROL_GROUPS
            for s in g.statements
        ]

        chunks: list[list[Statement]] = []
        current: list[Statement] = []
        executable = 0
        for statement in body:
            if statement.is_executable and executable == max_statements:
                chunks.append(current)
                current, executable = [], 0
            current.append(statement)
            executable += statement.is_executable
        if current or not chunks:
            chunks.append(current)

        parts: list[str] = []
        for chunk in chunks:
            groups: list[StatementGroup] = []
            if header is not None:
                groups.append(header)
            groups.extend(controls[n] for n in ("disable_fk_checks", "begin") if n in controls)
            groups.append(StatementGroup(name="body", statements=tuple(chunk)))
            groups.extend(controls[n] for n in ("commit", "enable_fk_checks") if n in controls)
            parts.append("\n\n".join(g.render() for g in groups if g.statements) + "\n")
        return parts
