"""Dump generation: DDL, data serialization and document assembly.

Usage:
    from sqlport.dump import DumpOptions, dump_database, generate_dump

    document = dump_database(engine, DumpOptions(target_dialect="mysql", conflict_mode="ignore"))
    print(document.render())
"""

from sqlport.dump.builder import StatementBuilder
from sqlport.dump.models import (
    MAX_CHUNK_SIZE,
    DumpDocument,
    DumpOptions,
    Statement,
    StatementGroup,
)
from sqlport.dump.orchestrator import dump_database, generate_dump
from sqlport.dump.splitter import split_statements, write_parts

__all__ = [
    "MAX_CHUNK_SIZE",
    "DumpDocument",
    "DumpOptions",
    "Statement",
    "StatementGroup",
    "StatementBuilder",
    "dump_database",
    "generate_dump",
    "split_statements",
    "write_parts",
]
