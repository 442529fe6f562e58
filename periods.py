from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterator, Optional
from zoneinfo import ZoneInfo

from config import get_settings


class InvalidRange(ValueError):
    pass


@dataclass(frozen=True)
class Period:
    slug: str
    start: date
    end: date

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1


def local_today() -> date:
    settings = get_settings()
    tz = ZoneInfo(settings.timezone)
    return datetime.now(tz).date()


def ensure_ordered(start: date, end: date) -> None:
    if start > end:
        raise InvalidRange(
            f"Start date {start.isoformat()} is after end date {end.isoformat()}"
        )


def month_end(d: date) -> date:
    first = d.replace(day=1)
    if first.month == 12:
        next_month = first.replace(year=first.year + 1, month=1)
    else:
        next_month = first.replace(month=first.month + 1)
    return next_month - date.resolution


def add_months(d: date, count: int) -> date:
    month_index = (d.year * 12) + (d.month - 1) + count
    year = month_index // 12
    month = (month_index % 12) + 1
    return date(year, month, 1)


def month_windows(start: date, end: date) -> Iterator[tuple[date, date, date]]:
    """Yield ``(month_first, window_start, window_end)`` for every calendar month
    touched by ``[start, end]``, with each window clipped to the range."""
    ensure_ordered(start, end)
    cursor = start.replace(day=1)
    while cursor <= end:
        yield cursor, max(cursor, start), min(month_end(cursor), end)
        cursor = add_months(cursor, 1)


def resolve_period(
    period: Optional[str],
    start: Optional[str],
    end: Optional[str],
    *,
    today: Optional[date] = None,
) -> Period:
    today = today or local_today()
    if not period and (start or end):
        period = "custom"
    if period == "all":
        return Period("all", date(1970, 1, 1), today)
    if period == "last_month":
        first_this = today.replace(day=1)
        last_month_end = first_this - date.resolution
        last_month_start = last_month_end.replace(day=1)
        return Period("last_month", last_month_start, last_month_end)
    if period == "custom":
        if not start or not end:
            raise InvalidRange("Custom period requires start and end dates")
        try:
            start_date = date.fromisoformat(start)
            end_date = date.fromisoformat(end)
        except ValueError as exc:
            raise InvalidRange(f"Invalid date: {exc}") from exc
        ensure_ordered(start_date, end_date)
        return Period("custom", start_date, end_date)
    if period and period != "this_month":
        raise InvalidRange(f"Unknown period: {period}")

    # this month, up to today
    return Period("this_month", today.replace(day=1), today)
