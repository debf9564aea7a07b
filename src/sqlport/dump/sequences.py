"""Sequence resets for targets whose auto-increment keys use sequences."""

from collections.abc import Sequence

from sqlport.dialects import DialectStrategy
from sqlport.dump.models import Statement
from sqlport.schema.models import TableDescriptor


def generate_sequence_resets(
    tables: Sequence[TableDescriptor],
    dialect: DialectStrategy,
) -> list[Statement]:
    """One reset per auto-incrementing primary-key column, in the given order.

    Emits nothing for dialects without sequences.
    """
    if not dialect.resets_sequences:
        return []

    statements: list[Statement] = []
    for table in tables:
        for name in table.primary_key:
            column = table.column(name)
            if not column.auto_increment:
                continue
            sql = dialect.sequence_reset(table.name, column.name)
            if sql:
                statements.append(Statement(sql=sql))
    return statements
