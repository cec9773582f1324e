"""Unit tests for the temporal database adapter."""

from __future__ import annotations

from datetime import UTC, date, datetime, time
from zoneinfo import ZoneInfo

import pytest

from src.utils.temporal import format_date
from src.utils.temporal_adapter import from_database, to_database


class TestFromDatabase:
    @pytest.mark.parametrize(
        ("column_type", "value", "expected"),
        [
            ("date", "2024-01-03", "2024-01-03T00:00:00Z"),
            ("dateTime", "2024-01-03 23:59:59", "2024-01-03T23:59:59Z"),
            ("time", "00:00:00", "1970-01-01T00:00:00Z"),
            ("time", "23:59:59", "1970-01-01T23:59:59Z"),
            ("timestamp", "2024-01-03 23:59:59", "2024-01-03T23:59:59Z"),
        ],
    )
    def test_values_are_utc(self, column_type: str, value: str, expected: str) -> None:
        result = from_database(value, column_type)  # type: ignore[arg-type]
        assert result is not None
        assert result.tzinfo is UTC
        assert format_date(result, "YYYY-MM-DD[T]HH:mm:ss[Z]") == expected

    @pytest.mark.parametrize("column_type", ["date", "dateTime", "time", "timestamp"])
    def test_none_passes_through(self, column_type: str) -> None:
        assert from_database(None, column_type) is None  # type: ignore[arg-type]

    @pytest.mark.parametrize("value", [{}, 42.1234, True, False])
    def test_rejects_non_strings(self, value: object) -> None:
        with pytest.raises(TypeError):
            from_database(value, "dateTime")

    def test_rejects_unknown_column_type(self) -> None:
        with pytest.raises(ValueError, match="Unsupported column type"):
            from_database("2024-01-03", "interval")  # type: ignore[arg-type]

    def test_offset_is_converted(self) -> None:
        result = from_database("2024-01-03 23:59:59+01:00", "timestamp")
        assert result == datetime(2024, 1, 3, 22, 59, 59, tzinfo=UTC)


class TestToDatabase:
    def test_none_passes_through(self) -> None:
        assert to_database(None, "dateTime") is None

    def test_zoned_values_are_written_in_utc(self) -> None:
        value = datetime(2024, 1, 4, 0, 30, tzinfo=ZoneInfo("Europe/Amsterdam"))
        assert to_database(value, "date") == "2024-01-03"
        assert to_database(value, "dateTime") == "2024-01-03 23:30:00"
        assert to_database(value, "time") == "23:30:00"
        assert to_database(value, "timestamp") == "2024-01-03 23:30:00"

    def test_plain_values(self) -> None:
        assert to_database(date(2024, 1, 3), "date") == "2024-01-03"
        assert to_database(time(12, 34, 56), "time") == "12:34:56"
        assert to_database(datetime(2024, 1, 3, 12, 0), "dateTime") == "2024-01-03 12:00:00"

    def test_rejects_unknown_column_type(self) -> None:
        with pytest.raises(ValueError):
            to_database(date(2024, 1, 3), "interval")  # type: ignore[arg-type]

    def test_round_trip_to_second_precision(self) -> None:
        value = datetime(2024, 6, 15, 18, 45, 12, 345678, tzinfo=ZoneInfo("Europe/Amsterdam"))
        restored = from_database(to_database(value, "dateTime"), "dateTime")
        assert restored == value.replace(microsecond=0)
