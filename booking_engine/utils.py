"""Shared time utilities used across the booking engine."""

from datetime import date, datetime, time, timedelta, timezone
from typing import Iterator, NamedTuple, Union


def parse_clock_time(value: Union[str, time]) -> time:
    """Parse a wall-clock time given as ``HH:MM`` (or ``HH:MM:SS``).

    Examples:
        >>> parse_clock_time("09:30")
        datetime.time(9, 30)
        >>> parse_clock_time(time(17, 0))
        datetime.time(17, 0)
    """
    if isinstance(value, time):
        return value
    raw = value.strip()
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(raw, fmt).time()
        except ValueError:
            continue
    raise ValueError(f"Invalid time {value!r}, expected HH:MM")


def ensure_utc(value: datetime, field_name: str = "datetime") -> datetime:
    """Normalize an aware datetime to UTC. Naive datetimes are rejected."""
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        raise ValueError(f"{field_name} must be timezone-aware, got naive {value.isoformat()}")
    return value.astimezone(timezone.utc)


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Yield each calendar date from ``start`` to ``end`` inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def template_weekday(day: date) -> int:
    """Day-of-week in template numbering: 0 = Sunday ... 6 = Saturday."""
    return (day.weekday() + 1) % 7


class DateRange(NamedTuple):
    """Inclusive range of calendar dates."""
    start: date
    end: date

    def days(self) -> Iterator[date]:
        return iter_dates(self.start, self.end)

    @property
    def num_days(self) -> int:
        return max((self.end - self.start).days + 1, 0)
