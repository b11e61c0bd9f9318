"""Time windows and UTC calendar-day helpers shared by the insights reports."""

import math
from datetime import date, datetime, timedelta, timezone

from lessonarcade.schemas import TimeWindow


def resolve_window(window_days: int, now: datetime | None = None) -> TimeWindow:
    """Window ending now and reaching back window_days * 24h.

    window_days == 0 gives start == end, which still spans one calendar day.
    """
    end = as_utc(now) if now else datetime.now(timezone.utc)
    return TimeWindow(start=end - timedelta(days=window_days), end=end)


def as_utc(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utc_date_key(dt: datetime) -> str:
    return as_utc(dt).strftime("%Y-%m-%d")


def iter_utc_days(window: TimeWindow):
    """Yield every UTC calendar date from window.start to window.end inclusive."""
    day: date = as_utc(window.start).date()
    last: date = as_utc(window.end).date()
    while day <= last:
        yield day
        day += timedelta(days=1)


def round_half_away(value: float, digits: int = 1) -> float:
    """Round like a dashboard would: 0.05 -> 0.1, -0.05 -> -0.1."""
    factor = 10 ** digits
    rounded = math.floor(abs(value) * factor + 0.5) / factor
    return -rounded if value < 0 else rounded
