"""Database client protocol definition.

Defines the ``DatabaseClient`` Protocol that adapters implement. It is the
only surface the rest of a host application uses to reach the database:
raw queries, transactions and dialect feature flags.

Usage:
    from sqlport.adapters.base import DatabaseClient

    def archive(client: DatabaseClient) -> None:
        rows = client.execute("SELECT id FROM v4_tasks WHERE status = :s", {"s": "done"})
        client.transaction(lambda tx: tx.execute("DELETE FROM v4_tasks WHERE status = 'done'"))
"""

from collections.abc import Callable, Iterator, Sequence
from contextlib import AbstractContextManager
from typing import Any, Protocol, TypeVar

from sqlalchemy import Connection

T = TypeVar("T")


class DatabaseClient(Protocol):
    """Database client interface that all adapters must implement.

    Feature flags let callers choose SQL the connected engine accepts
    without branching on the dialect name themselves.
    """

    dialect: str  # sqlite, mysql or postgresql
    supports_returning: bool
    supports_savepoints: bool

    def execute(self, sql: str, params: dict[str, Any] | None = None) -> list[dict]:
        """Execute one SQL statement with named parameters.

        Args:
            sql: SQL text using ``:name`` placeholders.
            params: Optional dict of named parameters.

        Returns:
            List of dicts, one per returned row. Empty list for statements
            that return no rows.

        Example:
            rows = client.execute(
                "SELECT id, name FROM v4_projects WHERE name = :name",
                {"name": "demo"},
            )
        """
        ...

    def transaction(self, fn: Callable[["DatabaseClient"], T]) -> T:
        """Run ``fn`` inside one transaction.

        ``fn`` receives a client bound to the open transaction. The
        transaction commits when ``fn`` returns and rolls back if it raises.

        Example:
            def move(tx: DatabaseClient) -> int:
                tx.execute("UPDATE v4_tasks SET status = 'done' WHERE id = :id", {"id": 7})
                return len(tx.execute("SELECT id FROM v4_tasks WHERE status = 'done'"))

            done = client.transaction(move)
        """
        ...

    def execute_script(self, statements: Sequence[str]) -> int:
        """Execute pre-split SQL statements in order on one connection.

        Statements are sent verbatim, without parameter interpolation, so
        they may contain literal ``%`` and ``:`` characters.

        Returns:
            Number of statements executed.
        """
        ...

    def connect(self) -> AbstractContextManager[Connection]:
        """Context manager yielding a SQLAlchemy connection handle."""
        ...

    def test_connection(self) -> bool:
        """Return True if ``SELECT 1`` succeeds."""
        ...

    def close(self) -> None:
        """Close connections and clean up resources."""
        ...


def iter_dicts(result: Any) -> Iterator[dict]:
    """Turn a SQLAlchemy result into plain dicts (empty if it returns no rows)."""
    if not result.returns_rows:
        return iter(())
    return (dict(row) for row in result.mappings())
