"""Type-aware SQL literal formatting.

Values are rendered according to the column's semantic type rather than
their Python type alone, so a SQLite ``0``/``1`` in a boolean column becomes
the target's canonical boolean and an epoch number in a timestamp column
becomes a timestamp literal.

Usage:
    from sqlport.dialects import get_dialect
    from sqlport.dialects.literals import format_value

    pg = get_dialect("postgresql")
    format_value(1, SemanticType.BOOLEAN, pg)     # 'TRUE'
    format_value("O'Hara", SemanticType.TEXT, pg)  # "'O''Hara'"
"""

import json
import math
import re
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from sqlport.schema.models import NUMERIC_TYPES, SemanticType

if TYPE_CHECKING:
    from sqlport.dialects.base import DialectStrategy

_NUMBER = re.compile(r"[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")
_TRUE_STRINGS = frozenset({"1", "t", "true", "y", "yes", "on"})
_FALSE_STRINGS = frozenset({"0", "f", "false", "n", "no", "off", ""})

# Epoch values above this are taken to be milliseconds
_MILLISECOND_THRESHOLD = 1e10


def coerce_bool(value: Any) -> bool:
    """Interpret a stored value as a boolean.

    Raises:
        ValueError: If a string is not a recognized boolean spelling.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, Decimal)):
        return value != 0
    if isinstance(value, (bytes, bytearray)):
        # MySQL BIT(1) comes back as b"\x00" / b"\x01"
        return int.from_bytes(value, "big") != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise ValueError(f"Cannot interpret {value!r} as boolean")


def coerce_datetime(value: Any) -> datetime:
    """Interpret a stored value as a naive UTC datetime.

    Accepts ``datetime``/``date`` objects, ISO 8601 strings and numeric Unix
    epochs (seconds, or milliseconds when above 1e10). Aware datetimes are
    converted to UTC.

    Raises:
        ValueError: If the value cannot be interpreted as a timestamp.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        return _from_epoch(float(value))
    if isinstance(value, str):
        stripped = value.strip()
        if _NUMBER.fullmatch(stripped):
            return _from_epoch(float(stripped))
        return coerce_datetime(datetime.fromisoformat(stripped))
    raise ValueError(f"Cannot interpret {value!r} as timestamp")


def coerce_date(value: Any) -> date:
    """Interpret a stored value as a date."""
    if isinstance(value, datetime):
        return coerce_datetime(value).date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and not _NUMBER.fullmatch(value.strip()):
        return date.fromisoformat(value.strip()[:10])
    return coerce_datetime(value).date()


def format_timestamp_text(value: datetime) -> str:
    """``YYYY-MM-DD HH:MM:SS`` with microseconds only when present."""
    return value.isoformat(sep=" ")


def format_value(value: Any, semantic_type: SemanticType, dialect: "DialectStrategy") -> str:
    """Render one value as a SQL literal for the target dialect.

    Args:
        value: Value as returned by the source driver.
        semantic_type: Semantic type of the column the value belongs to.
        dialect: Target dialect strategy.

    Returns:
        SQL literal text.

    Raises:
        ValueError: If the value cannot be represented in the column's type.
    """
    if value is None:
        return "NULL"

    if semantic_type == SemanticType.BOOLEAN:
        return dialect.format_boolean(coerce_bool(value))
    if semantic_type == SemanticType.TIMESTAMP:
        return dialect.format_timestamp(coerce_datetime(value))
    if semantic_type == SemanticType.DATE:
        return dialect.format_date(coerce_date(value))
    if isinstance(value, memoryview):
        value = value.tobytes()
    if isinstance(value, (bytes, bytearray)):
        if semantic_type in (SemanticType.BLOB, SemanticType.UNKNOWN):
            return dialect.format_bytes(bytes(value))
        value = bytes(value).decode("utf-8")
    if semantic_type in NUMERIC_TYPES:
        return _format_number(value, dialect)
    if isinstance(value, (dict, list)):
        return dialect.quote_string(json.dumps(value, sort_keys=True, separators=(",", ":")))
    if semantic_type == SemanticType.UNKNOWN:
        return _format_untyped(value, dialect)
    if isinstance(value, float):
        value = repr(value)
    return dialect.quote_string(str(value))


def _format_number(value: Any, dialect: "DialectStrategy") -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return repr(value) if math.isfinite(value) else dialect.format_non_finite(value)
    if isinstance(value, Decimal):
        return str(value) if value.is_finite() else dialect.format_non_finite(float(value))
    text = str(value).strip()
    if _NUMBER.fullmatch(text):
        return text
    # SQLite lets any value into a numeric column; keep it as text
    return dialect.quote_string(str(value))


def _format_untyped(value: Any, dialect: "DialectStrategy") -> str:
    if isinstance(value, bool):
        return dialect.format_boolean(value)
    if isinstance(value, (int, float, Decimal)):
        return _format_number(value, dialect)
    if isinstance(value, datetime):
        return dialect.format_timestamp(coerce_datetime(value))
    if isinstance(value, date):
        return dialect.format_date(value)
    return dialect.quote_string(str(value))


def _from_epoch(seconds: float) -> datetime:
    if abs(seconds) > _MILLISECOND_THRESHOLD:
        seconds = seconds / 1000
    return datetime.fromtimestamp(seconds, tz=timezone.utc).replace(tzinfo=None)
