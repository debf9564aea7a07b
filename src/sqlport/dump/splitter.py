"""Statement splitting for loading dumps and writing part files.

Usage:
    from sqlport.dump.splitter import split_statements, write_parts

    statements = split_statements(Path("dump.sql").read_text())
    paths = write_parts(document, Path("dump.sql"), max_statements=500)
"""

import logging
from pathlib import Path

from sqlport.dialects.lexer import iter_segments
from sqlport.dump.models import DumpDocument

logger = logging.getLogger(__name__)


def split_statements(sql: str, backslash_escapes: bool = False) -> list[str]:
    """Split SQL text into statements on top-level semicolons.

    Semicolons inside string literals, quoted identifiers and comments do
    not end a statement. Comments are dropped and comment-only fragments
    are not returned.

    Args:
        sql: SQL text, e.g. a rendered dump document.
        backslash_escapes: Treat ``\\`` as an escape inside string literals
            (for MySQL dumps).

    Returns:
        Statements without their trailing semicolon.

    Example:
        >>> split_statements("INSERT INTO t VALUES ('a;b'); -- done\\nCOMMIT;")
        ["INSERT INTO t VALUES ('a;b')", 'COMMIT']
    """
    statements: list[str] = []
    current: list[str] = []
    for segment in iter_segments(sql, backslash_escapes=backslash_escapes):
        if segment.kind == "comment":
            continue
        if segment.kind == "terminator":
            statement = "".join(current).strip()
            if statement:
                statements.append(statement)
            current = []
            continue
        current.append(segment.text)

    tail = "".join(current).strip()
    if tail:
        statements.append(tail)
    return statements


def part_path(output: Path, number: int) -> Path:
    """``dump.sql`` -> ``dump-part1.sql``."""
    return output.with_name(f"{output.stem}-part{number}{output.suffix}")


def write_parts(document: DumpDocument, output: Path, max_statements: int = 0) -> list[Path]:
    """Write a document to one file, or to part files of bounded size.

    Args:
        document: Dump document.
        output: Target path. Parts are written next to it as
            ``{stem}-part{n}{suffix}``.
        max_statements: Statements per part; 0 writes a single file.

    Returns:
        Paths written, in load order.
    """
    parts = document.split(max_statements)
    if len(parts) == 1:
        output.write_text(parts[0], encoding="utf-8")
        return [output]

    paths: list[Path] = []
    for number, text in enumerate(parts, start=1):
        path = part_path(output, number)
        path.write_text(text, encoding="utf-8")
        paths.append(path)
    logger.info(f"Wrote {len(paths)} dump parts next to {output}")
    return paths
