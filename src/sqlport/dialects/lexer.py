"""Minimal SQL tokenizer for statement boundaries and identifier quotes.

This is not a parser. It only knows enough to tell string literals, quoted
identifiers and comments apart from everything else, which is all that
statement splitting and quote-style conversion need.
"""

from collections.abc import Iterator
from typing import Literal, NamedTuple

SegmentKind = Literal["string", "identifier", "comment", "terminator", "code"]


class Segment(NamedTuple):
    kind: SegmentKind
    text: str


def iter_segments(sql: str, backslash_escapes: bool = False) -> Iterator[Segment]:
    """Split SQL text into literal, identifier, comment and code segments.

    Args:
        sql: SQL text.
        backslash_escapes: Treat ``\\`` as an escape inside string literals
            (MySQL default mode).

    Yields:
        Segments whose texts concatenate back to ``sql`` exactly.
        Unterminated literals or comments run to the end of the text.
    """
    i = 0
    n = len(sql)
    code_start = 0

    while i < n:
        ch = sql[i]
        if ch in ("'", '"', "`"):
            end = _scan_quoted(sql, i, ch, backslash_escapes and ch == "'")
            kind: SegmentKind = "string" if ch == "'" else "identifier"
        elif ch == "-" and sql.startswith("--", i):
            newline = sql.find("\n", i)
            end = n if newline == -1 else newline
            kind = "comment"
        elif ch == "/" and sql.startswith("/*", i):
            close = sql.find("*/", i + 2)
            end = n if close == -1 else close + 2
            kind = "comment"
        elif ch == ";":
            end = i + 1
            kind = "terminator"
        else:
            i += 1
            continue

        if code_start < i:
            yield Segment("code", sql[code_start:i])
        yield Segment(kind, sql[i:end])
        i = end
        code_start = end

    if code_start < n:
        yield Segment("code", sql[code_start:])


def unquote_identifier(token: str) -> str:
    """Strip the surrounding quotes of an identifier token and undo doubling."""
    quote = token[0]
    body = token[1:-1] if len(token) > 1 and token.endswith(quote) else token[1:]
    return body.replace(quote * 2, quote)


def _scan_quoted(sql: str, start: int, quote: str, backslash_escapes: bool) -> int:
    """Return the index just past the closing quote that matches ``sql[start]``."""
    i = start + 1
    n = len(sql)
    while i < n:
        ch = sql[i]
        if backslash_escapes and ch == "\\":
            i += 2
            continue
        if ch == quote:
            if i + 1 < n and sql[i + 1] == quote:
                i += 2
                continue
            return i + 1
        i += 1
    return n
