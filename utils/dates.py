"""
utils/dates.py — Date helpers shared by the report pipeline.

All instants handled by the reporting code are timezone-aware UTC datetimes:
- Date-only strings ("2024-03-01") parse to UTC midnight
- Naive datetimes are assumed to already be UTC
- Display dates use the dd/mm/yyyy format of the dashboard
"""

import math
import re
from datetime import date, datetime, timezone

from typing import Optional, Union

DateLike = Union[str, date, datetime, None]

DATE_ONLY_RE = re.compile(r'^\d{4}-\d{2}-\d{2}$')

# Oldest date covered by the 'all_time' preset
ALL_TIME_START = datetime(2020, 1, 1, tzinfo=timezone.utc)

DATE_PRESETS = ('last_month', 'last_3_months', 'last_year', 'all_time', 'custom')

SECONDS_PER_DAY = 60 * 60 * 24


def to_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_datetime(value: DateLike) -> Optional[datetime]:
    """
    Parse an ISO-8601 string, date or datetime into an aware UTC datetime.

    Returns None for None and empty strings. Raises ValueError for strings
    that are not ISO dates.

    Examples:
        "2024-03-01"              -> 2024-03-01 00:00:00+00:00
        "2024-03-01T10:30:00Z"    -> 2024-03-01 10:30:00+00:00
        "2024-03-01T12:00:00+02:00" -> 2024-03-01 10:00:00+00:00
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return to_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)

    text = str(value).strip()
    if not text:
        return None
    if DATE_ONLY_RE.match(text):
        parsed = datetime.strptime(text, '%Y-%m-%d')
        return parsed.replace(tzinfo=timezone.utc)
    # fromisoformat() only accepts a trailing 'Z' from Python 3.11 on
    if text.endswith('Z') or text.endswith('z'):
        text = text[:-1] + '+00:00'
    return to_utc(datetime.fromisoformat(text))


def days_between(start: datetime, end: datetime) -> int:
    """Whole days from start to end, rounding partial days up."""
    return math.ceil((end - start).total_seconds() / SECONDS_PER_DAY)


def format_date(value: Optional[datetime]) -> str:
    """Format as dd/mm/yyyy, or '-' when the value is missing."""
    if value is None:
        return '-'
    return value.strftime('%d/%m/%Y')


def month_key(value: datetime) -> str:
    """Calendar bucket key: YYYY-MM."""
    return value.strftime('%Y-%m')


def _first_of_month(year, month):
    # month may be <= 0 when stepping back across a year boundary
    while month <= 0:
        month += 12
        year -= 1
    return datetime(year, month, 1, tzinfo=timezone.utc)


def resolve_date_range(preset, now, start=None, end=None):
    """
    Resolve a named preset into a DateRange anchored at `now`.

    Presets:
    - last_month:     first day of the current month → now
    - last_3_months:  first day of the month three months back → now
    - last_year:      January 1st of the current year → now
    - all_time:       2020-01-01 → now
    - custom:         caller-supplied start and end (both required)

    Unknown presets fall back to 'last_month'.
    """
    from models import DateRange

    now = to_utc(now)

    if preset == 'custom':
        start_dt = parse_datetime(start)
        end_dt = parse_datetime(end)
        if start_dt is None or end_dt is None:
            raise ValueError("A custom date range needs both a start and an end date")
        return DateRange(start=start_dt, end=end_dt, preset='custom')

    if preset == 'last_3_months':
        range_start = _first_of_month(now.year, now.month - 3)
    elif preset == 'last_year':
        range_start = datetime(now.year, 1, 1, tzinfo=timezone.utc)
    elif preset == 'all_time':
        range_start = ALL_TIME_START
    else:
        preset = 'last_month'
        range_start = _first_of_month(now.year, now.month)

    return DateRange(start=range_start, end=now, preset=preset)
