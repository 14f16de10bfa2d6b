"""
Date utility functions for resolving the days an entry applies to.

This module provides functions for parsing user supplied dates and
expanding a start/end pair into the calendar days to submit.
"""

from datetime import date, datetime, timedelta
from typing import List, Optional
import re

from .errors import DateRangeError


# date.weekday() values for Saturday and Sunday
WEEKEND_DAYS = (5, 6)

RELATIVE_KEYWORDS = {
    'today': 0,
    'yesterday': -1,
    'tomorrow': 1,
}


def inclusive_day_count(start: date, end: date) -> int:
    """
    Number of calendar days from start to end, both included.

    Uses the real calendar difference, so leap days are counted.

    Examples:
        >>> inclusive_day_count(date(2024, 2, 28), date(2024, 3, 1))
        3
    """
    return (end - start).days + 1


def is_weekend(day: date) -> bool:
    """Return True for Saturday and Sunday."""
    return day.weekday() in WEEKEND_DAYS


def expand_date_range(start: date, end: date, include_weekends: bool = True) -> List[date]:
    """
    Expand a start/end pair into the ordered, inclusive list of dates.

    Args:
        start: First day of the range
        end: Last day of the range (inclusive)
        include_weekends: If False, Saturdays and Sundays are dropped

    Returns:
        Dates in ascending order

    Raises:
        DateRangeError: If end is before start

    Examples:
        >>> expand_date_range(date(2024, 1, 5), date(2024, 1, 8), include_weekends=False)
        [datetime.date(2024, 1, 5), datetime.date(2024, 1, 8)]
    """
    if end < start:
        raise DateRangeError(
            f"Invalid range: start date ({start.isoformat()}) is after end date ({end.isoformat()})"
        )

    days = [start + timedelta(days=offset) for offset in range(inclusive_day_count(start, end))]

    if include_weekends:
        return days
    return [day for day in days if not is_weekend(day)]


def parse_date(text: str, today: Optional[date] = None) -> date:
    """
    Parse a date given on the command line.

    Accepted formats:
    - ISO dates: "2024-01-15"
    - Keywords: "today", "yesterday", "tomorrow"
    - Day offsets relative to today: "+2", "-3"

    Args:
        text: Date text
        today: Reference day for relative values (defaults to date.today())

    Returns:
        The resolved date

    Raises:
        DateRangeError: If the text cannot be parsed
    """
    if text is None or not text.strip():
        raise DateRangeError("Date cannot be empty")

    value = text.strip().lower()
    if today is None:
        today = date.today()

    if value in RELATIVE_KEYWORDS:
        return today + timedelta(days=RELATIVE_KEYWORDS[value])

    offset_match = re.match(r'^([+-])(\d+)$', value)
    if offset_match:
        sign, amount = offset_match.groups()
        days = int(amount) if sign == '+' else -int(amount)
        return today + timedelta(days=days)

    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except ValueError:
        raise DateRangeError(
            f"Invalid date: '{text}'. Expected YYYY-MM-DD, today, yesterday, tomorrow or +N/-N"
        )
