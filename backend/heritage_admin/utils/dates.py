"""Date helpers shared by services and reports."""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Normalize a timestamp read back from the backend to an aware UTC datetime.

    SQLite hands back naive values; Postgres hands back aware ones.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def isoformat(value: datetime | None) -> str | None:
    value = as_utc(value)
    return value.isoformat() if value else None


def format_day(value: datetime | date | str | None) -> str:
    """Render a date or timestamp as YYYY-MM-DD ('' when missing)."""
    if not value:
        return ""
    if isinstance(value, str):
        return value.split("T")[0]
    if isinstance(value, datetime):
        return as_utc(value).date().isoformat()
    return value.isoformat()


@dataclass
class DateRange:
    start: datetime
    end: datetime

    @property
    def days(self) -> list[date]:
        first, last = self.start.date(), self.end.date()
        return [first + timedelta(days=i) for i in range((last - first).days + 1)]


def default_date_range(days: int = 30, today: date | None = None) -> DateRange:
    """Last `days` days inclusive of today, from start of day to end of day."""
    today = today or utcnow().date()
    end = datetime.combine(today, time.max, tzinfo=timezone.utc)
    start = datetime.combine(today - timedelta(days=days - 1), time.min, tzinfo=timezone.utc)
    return DateRange(start=start, end=end)


def resolve_date_range(
    start: date | None, end: date | None, default_days: int = 30
) -> DateRange:
    if start is None and end is None:
        return default_date_range(default_days)
    end = end or utcnow().date()
    start = start or end - timedelta(days=default_days - 1)
    if start > end:
        start, end = end, start
    return DateRange(
        start=datetime.combine(start, time.min, tzinfo=timezone.utc),
        end=datetime.combine(end, time.max, tzinfo=timezone.utc),
    )


def optional_date_range(start: date | None, end: date | None) -> DateRange | None:
    """Range for list filters: no filtering unless a bound is given."""
    if start is None and end is None:
        return None
    return resolve_date_range(start, end)
