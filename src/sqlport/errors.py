"""Error taxonomy for the dump engine.

Every error raised by introspection, ordering, mapping or generation derives
from ``DumpError`` and carries the name of the object it is about, so callers
(and the CLI) can report exactly which table, column or index failed.

Usage:
    from sqlport.errors import DumpError, CyclicDependencyError

    try:
        document = generate_dump(conn, options)
    except CyclicDependencyError as e:
        print(f"Break the cycle between: {', '.join(e.tables)}")
    except DumpError as e:
        print(f"Dump failed: {e}")
"""


class DumpError(Exception):
    """Base class for all dump engine failures.

    Args:
        message: Human readable description.
        table: Table (or view) the failure is about, if any.
    """

    def __init__(self, message: str, table: str | None = None) -> None:
        super().__init__(message)
        self.table = table


class NotFoundError(DumpError):
    """A requested table or view is absent from the source catalog."""

    def __init__(self, kind: str, name: str) -> None:
        super().__init__(f"{kind.capitalize()} '{name}' not found in source catalog", table=name)
        self.kind = kind
        self.name = name


class UnsupportedTypeError(DumpError):
    """A column's semantic type has no mapping for the target dialect."""

    def __init__(
        self,
        type_name: str,
        dialect: str,
        table: str | None = None,
        column: str | None = None,
    ) -> None:
        subject = f"Column '{table}.{column}' has type" if table and column else "Type"
        super().__init__(
            f"{subject} '{type_name}' which cannot be mapped to {dialect}",
            table=table,
        )
        self.column = column
        self.type_name = type_name
        self.dialect = dialect


class CyclicDependencyError(DumpError):
    """The foreign-key graph over the requested tables contains a cycle."""

    def __init__(self, tables: list[str]) -> None:
        super().__init__(
            "Foreign key cycle between tables: "
            f"{', '.join(tables)}. Dump with cycle_policy='defer' or split the request."
        )
        self.tables = tables


class IndexLimitExceededError(DumpError):
    """An index key is wider than the target engine allows, even after prefixing."""

    def __init__(self, table: str, index: str, key_bytes: int, limit: int) -> None:
        super().__init__(
            f"Index '{index}' on '{table}' needs {key_bytes} bytes, "
            f"exceeding the {limit}-byte key limit",
            table=table,
        )
        self.index = index
        self.key_bytes = key_bytes
        self.limit = limit


class MissingPrimaryKeyError(DumpError):
    """Conflict mode ``replace`` was requested for a table without a primary key."""

    def __init__(self, table: str) -> None:
        super().__init__(
            f"Table '{table}' has no primary key; conflict mode 'replace' "
            f"cannot build an upsert for it",
            table=table,
        )


class LoadError(DumpError):
    """A statement of a dump document failed while loading it."""

    def __init__(self, index: int, statement: str, reason: str) -> None:
        preview = statement if len(statement) <= 120 else statement[:117] + "..."
        super().__init__(f"Statement {index} failed: {reason}\n  {preview}")
        self.index = index
        self.statement = statement


class ProfileNotFoundError(Exception):
    """Raised when no database profile is configured."""

    pass
