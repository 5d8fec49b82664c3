"""Date parsing utilities."""

import re
from datetime import date, timedelta
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

DAYS_AGO_PATTERN = re.compile(r"^(\d+)\s+days?\s+ago$")

PERIODS = (
    "this-week",
    "this-month",
    "this-quarter",
    "this-year",
    "last-week",
    "last-month",
    "last-quarter",
    "last-year",
)


def _quarter_start(day: date) -> date:
    return day.replace(month=3 * ((day.month - 1) // 3) + 1, day=1)


def _period_start(unit: str, today: date) -> date | None:
    """Return the first day of the current week/month/quarter/year."""
    if unit == "week":
        return today - timedelta(days=today.weekday())
    if unit == "month":
        return today.replace(day=1)
    if unit == "quarter":
        return _quarter_start(today)
    if unit == "year":
        return today.replace(month=1, day=1)
    return None


def _step(unit: str) -> relativedelta:
    if unit == "week":
        return relativedelta(weeks=1)
    if unit == "quarter":
        return relativedelta(months=3)
    return relativedelta(**{f"{unit}s": 1})


def parse_date(date_str: str) -> date:
    """Parse a date string into a date object.

    Supports absolute dates ("2024-01-15", "15 Jan 2024") and relative
    phrases: "today", "yesterday", "tomorrow", "N days ago",
    "last/this/next week|month|quarter|year" (first day of that period)
    and "last <weekday>".

    Args:
        date_str: Date string in various formats

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    text = date_str.strip().lower()
    today = date.today()

    fixed = {
        "today": today,
        "yesterday": today - timedelta(days=1),
        "tomorrow": today + timedelta(days=1),
    }
    if text in fixed:
        return fixed[text]

    match = DAYS_AGO_PATTERN.match(text)
    if match:
        return today - timedelta(days=int(match.group(1)))

    words = text.split()
    if len(words) == 2 and words[0] in ("last", "this", "next"):
        which, unit = words
        if which == "last" and unit in WEEKDAYS:
            days_ago = (today.weekday() - WEEKDAYS.index(unit)) % 7 or 7
            return today - timedelta(days=days_ago)

        start = _period_start(unit, today)
        if start is not None:
            if which == "last":
                return start - _step(unit)
            if which == "next":
                return start + _step(unit)
            return start

    try:
        return date_parser.parse(text).date()
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}") from e


def get_date_range(period: str) -> tuple[date, date]:
    """Get start and end dates for a named period.

    "this-*" periods end today; "last-*" periods cover the whole previous
    week, month, quarter or year.

    Args:
        period: One of PERIODS

    Returns:
        Tuple of (start_date, end_date), both inclusive

    Raises:
        ValueError: If period string is not recognized
    """
    name = period.strip().lower()
    if name not in PERIODS:
        raise ValueError(f"Unknown period: '{period}'. Supported periods: {', '.join(PERIODS)}")

    which, unit = name.split("-", 1)
    today = date.today()
    current_start = _period_start(unit, today)

    if which == "this":
        return (current_start, today)

    start_date = current_start - _step(unit)
    end_date = current_start - timedelta(days=1)
    return (start_date, end_date)
