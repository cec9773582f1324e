"""Date and time formatting following the DayJS formatting tokens.

Four kinds of values are accepted, all normalized to an aware datetime before
formatting:

  - aware `datetime`: zoned values (and instants), keep their timezone;
  - naive `datetime`: plain date and time, interpreted as UTC;
  - `date`: plain date, at midnight UTC;
  - `time`: plain time, on 1970-01-01 UTC.

Text between square brackets is passed through literally, e.g. "YYYY-MM-DD[T]HH:mm".
Only the named tokens (months and weekdays) depend on the locale.

See https://day.js.org/docs/en/display/format
"""

from __future__ import annotations

import re
from datetime import UTC, date, datetime, time, timedelta
from typing import Literal, Union

TemporalValue = Union[datetime, date, time]
ComparisonUnit = Literal["year", "month", "date", "hour", "minute"]

DEFAULT_LOCALE = "en-GB"

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

_FORMAT_RE = re.compile(
    r"\[([^\]]+)]|Y{1,4}|M{1,4}|Do|D{1,2}|d{1,4}|Wo|W{1,2}|w{1,2}|H{1,2}|h{1,2}|k{1,2}"
    r"|a|A|m{1,2}|s{1,2}|SSSS|SSS|X|x|Z{1,2}|z{1,3}|Q"
)

# Weekdays are indexed Monday-first, matching datetime.weekday()
_LOCALES: dict[str, dict[str, tuple[str, ...]]] = {
    "en": {
        "months_short": (
            "Jan", "Feb", "Mar", "Apr", "May", "Jun",
            "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
        ),
        "months_long": (
            "January", "February", "March", "April", "May", "June",
            "July", "August", "September", "October", "November", "December",
        ),
        "weekdays_narrow": ("M", "T", "W", "T", "F", "S", "S"),
        "weekdays_short": ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"),
        "weekdays_long": (
            "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday",
        ),
    },
    "nl": {
        "months_short": (
            "jan", "feb", "mrt", "apr", "mei", "jun",
            "jul", "aug", "sep", "okt", "nov", "dec",
        ),
        "months_long": (
            "januari", "februari", "maart", "april", "mei", "juni",
            "juli", "augustus", "september", "oktober", "november", "december",
        ),
        "weekdays_narrow": ("M", "D", "W", "D", "V", "Z", "Z"),
        "weekdays_short": ("ma", "di", "wo", "do", "vr", "za", "zo"),
        "weekdays_long": (
            "maandag", "dinsdag", "woensdag", "donderdag", "vrijdag", "zaterdag", "zondag",
        ),
    },
}

_DURATION_UNITS = (
    ("year", 365 * 86400),
    ("month", 30 * 86400),
    ("week", 7 * 86400),
    ("day", 86400),
    ("hour", 3600),
    ("minute", 60),
    ("second", 1),
)


def _language(locale: str | None) -> str:
    return re.split(r"[-_]", locale or DEFAULT_LOCALE)[0].lower()


def is_supported_locale(locale: str | None) -> bool:
    return _language(locale) in _LOCALES


def to_zoned_datetime(value: TemporalValue) -> datetime:
    """Normalize any of the supported temporal values to an aware datetime."""
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=UTC)
    if isinstance(value, time):
        return datetime.combine(date(1970, 1, 1), value.replace(tzinfo=None), tzinfo=UTC)

    raise TypeError(
        f"Invalid value passed for formatting (t={type(value).__name__}, v={value!r})"
    )


def _ordinal(number: int) -> str:
    if 11 <= number % 100 <= 13:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")
    return f"{number}{suffix}"


def _offset(value: datetime, separator: str) -> str:
    offset = value.utcoffset() or timedelta(0)
    minutes = int(offset.total_seconds()) // 60
    sign = "+" if minutes >= 0 else "-"
    hours, minutes = divmod(abs(minutes), 60)
    return f"{sign}{hours:02d}{separator}{minutes:02d}"


def _timezone_name(value: datetime) -> str:
    return getattr(value.tzinfo, "key", None) or value.tzname() or "UTC"


def format_date(value: TemporalValue, pattern: str, locale: str | None = None) -> str:
    """Format `value` according to `pattern`, e.g. format_date(d, "dddd, MMMM Do YYYY")."""
    zoned = to_zoned_datetime(value)

    language = _language(locale)
    if language not in _LOCALES:
        raise ValueError(f"Unsupported locale: {locale!r}")
    names = _LOCALES[language]

    def _token(match: re.Match[str]) -> str:
        if match.group(1) is not None:
            return match.group(1)

        token = match.group(0)
        if token == "YY":
            return f"{zoned.year:04d}"[2:]
        if token == "YYYY":
            return str(zoned.year)

        if token == "M":
            return str(zoned.month)
        if token == "MM":
            return f"{zoned.month:02d}"
        if token == "MMM":
            return names["months_short"][zoned.month - 1]
        if token == "MMMM":
            return names["months_long"][zoned.month - 1]

        if token == "D":
            return str(zoned.day)
        if token == "DD":
            return f"{zoned.day:02d}"
        if token == "Do":
            return _ordinal(zoned.day)

        if token == "d":
            return str(zoned.isoweekday() % 7)  # Sunday is 0
        if token == "dd":
            return names["weekdays_narrow"][zoned.weekday()]
        if token == "ddd":
            return names["weekdays_short"][zoned.weekday()]
        if token == "dddd":
            return names["weekdays_long"][zoned.weekday()]

        if token in ("W", "w"):
            return str(zoned.isocalendar()[1])
        if token in ("WW", "ww"):
            return f"{zoned.isocalendar()[1]:02d}"
        if token == "Wo":
            return _ordinal(zoned.isocalendar()[1])

        if token == "H":
            return str(zoned.hour)
        if token == "HH":
            return f"{zoned.hour:02d}"
        if token == "h":
            return str(zoned.hour % 12)
        if token == "hh":
            return f"{zoned.hour % 12:02d}"
        if token == "k":
            return str(zoned.hour + 1)
        if token == "kk":
            return f"{zoned.hour + 1:02d}"

        if token == "m":
            return str(zoned.minute)
        if token == "mm":
            return f"{zoned.minute:02d}"
        if token == "s":
            return str(zoned.second)
        if token == "ss":
            return f"{zoned.second:02d}"
        if token == "SSS":
            return f"{zoned.microsecond // 1000:03d}"
        if token == "SSSS":
            return f"{zoned.microsecond % 1000:03d}"

        if token == "X":
            return str((zoned - _EPOCH) // timedelta(seconds=1))
        if token == "x":
            return str((zoned - _EPOCH) // timedelta(milliseconds=1))

        if token == "Z":
            return _offset(zoned, ":")
        if token == "ZZ":
            return _offset(zoned, "")
        if token in ("z", "zzz"):
            return _timezone_name(zoned)

        if token == "A":
            return "AM" if zoned.hour < 12 else "PM"
        if token == "a":
            return "am" if zoned.hour < 12 else "pm"
        if token == "Q":
            return str((zoned.month - 1) // 3 + 1)

        raise ValueError(f"Invalid formatting parameter received (f={pattern}, v={token})")

    return _FORMAT_RE.sub(_token, pattern)


# ── Relative durations ───────────────────────────────────────


def format_duration(delta: timedelta | float) -> str:
    """Human readable form of `delta` ("in 3 weeks", "1 year ago", "now").

    Positive durations lie in the future. Numbers are taken as seconds.
    """
    seconds = delta.total_seconds() if isinstance(delta, timedelta) else float(delta)
    magnitude = abs(seconds)
    if magnitude < 1:
        return "now"

    for unit, size in _DURATION_UNITS:
        if magnitude >= size:
            count = int(magnitude // size)
            break

    label = unit if count == 1 else f"{unit}s"
    return f"in {count} {label}" if seconds > 0 else f"{count} {label} ago"


def format_relative(value: TemporalValue, now: TemporalValue | None = None) -> str:
    """Describe `value` relative to `now` (defaults to the current time)."""
    reference = to_zoned_datetime(now) if now is not None else datetime.now(UTC)
    return format_duration(to_zoned_datetime(value) - reference)


# ── Comparisons ──────────────────────────────────────────────


def _start_of(value: datetime, unit: ComparisonUnit) -> datetime:
    if unit == "year":
        return value.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)
    if unit == "month":
        return value.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if unit == "date":
        return value.replace(hour=0, minute=0, second=0, microsecond=0)
    if unit == "hour":
        return value.replace(minute=0, second=0, microsecond=0)
    if unit == "minute":
        return value.replace(second=0, microsecond=0)

    raise ValueError(f"Invalid comparison unit: {unit!r}")


def _end_of(value: datetime, unit: ComparisonUnit) -> datetime:
    start = _start_of(value, unit)
    if unit == "year":
        following = start.replace(year=start.year + 1)
    elif unit == "month":
        following = start.replace(
            year=start.year + start.month // 12, month=start.month % 12 + 1
        )
    elif unit == "date":
        following = start + timedelta(days=1)
    elif unit == "hour":
        following = start + timedelta(hours=1)
    else:
        following = start + timedelta(minutes=1)

    return following - timedelta(microseconds=1)


def is_before(this: TemporalValue, that: TemporalValue, unit: ComparisonUnit | None = None) -> bool:
    """Whether `this` lies before `that`, optionally compared at the granularity of `unit`."""
    a, b = to_zoned_datetime(this), to_zoned_datetime(that)
    if unit is None:
        return a < b
    return _end_of(a, unit) < b


def is_after(this: TemporalValue, that: TemporalValue, unit: ComparisonUnit | None = None) -> bool:
    """Whether `this` lies after `that`, optionally compared at the granularity of `unit`."""
    a, b = to_zoned_datetime(this), to_zoned_datetime(that)
    if unit is None:
        return a > b
    return b < _start_of(a, unit)


def is_same(this: TemporalValue, that: TemporalValue, unit: ComparisonUnit | None = None) -> bool:
    """Whether both represent the same moment, or fall within the same `unit`."""
    a, b = to_zoned_datetime(this), to_zoned_datetime(that)
    if unit is None:
        return a == b
    return _start_of(a, unit) <= b <= _end_of(a, unit)
