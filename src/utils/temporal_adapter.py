"""Conversion between temporal values and their database string representation.

DATE, DATETIME, TIME and TIMESTAMP columns are always stored in UTC. Values
read from the database become aware datetimes in UTC; values written to it are
converted to UTC first, whatever timezone they carry.
"""

from __future__ import annotations

from datetime import UTC, date, datetime, time
from typing import Literal

from src.utils.temporal import TemporalValue, format_date, to_zoned_datetime

ColumnType = Literal["date", "dateTime", "time", "timestamp"]

_COLUMN_FORMATS: dict[str, str] = {
    "date": "YYYY-MM-DD",
    "dateTime": "YYYY-MM-DD HH:mm:ss",
    "time": "HH:mm:ss",
    "timestamp": "YYYY-MM-DD HH:mm:ss",
}


def from_database(value: object, column_type: ColumnType) -> datetime | None:
    """Parse a column value into an aware datetime in UTC. None passes through."""
    if value is None:
        return None

    if column_type not in _COLUMN_FORMATS:
        raise ValueError(f"Unsupported column type: {column_type!r}")

    if not isinstance(value, str):
        raise TypeError(f"Expected a string for a {column_type} column, got {type(value).__name__}")

    if column_type == "date":
        parsed_date = date.fromisoformat(value)
        return datetime(parsed_date.year, parsed_date.month, parsed_date.day, tzinfo=UTC)

    if column_type == "time":
        return datetime.combine(date(1970, 1, 1), time.fromisoformat(value), tzinfo=UTC)

    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def to_database(value: TemporalValue | None, column_type: ColumnType) -> str | None:
    """Format `value` for a column of `column_type`, in UTC. None passes through."""
    if value is None:
        return None

    pattern = _COLUMN_FORMATS.get(column_type)
    if pattern is None:
        raise ValueError(f"Unsupported column type: {column_type!r}")

    return format_date(to_zoned_datetime(value).astimezone(UTC), pattern)
