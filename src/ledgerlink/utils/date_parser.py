"""Date parsing utilities."""

from datetime import date, datetime
from typing import Optional

from dateutil import parser as date_parser


def parse_date(date_str: str) -> date:
    """Parse a date string into a date object.

    Accepts the formats accounting exports use: "2024-01-15", "01/15/2024",
    "January 15, 2024", and timestamps such as "2024-01-15T10:00:00Z".

    Args:
        date_str: Date string

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    if date_str is None or not str(date_str).strip():
        raise ValueError("Empty date string")

    date_str = str(date_str).strip().strip("\"'")

    try:
        dt = date_parser.parse(date_str)
        return dt.date()
    except (ValueError, TypeError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def normalize_date(date_str, today: Optional[date] = None) -> tuple[date, bool]:
    """Parse a date, falling back to today instead of failing.

    Returns:
        Tuple of (date, needs_review). ``needs_review`` is True when the input
        could not be parsed and today's date was substituted.
    """
    if isinstance(date_str, datetime):
        return date_str.date(), False
    if isinstance(date_str, date):
        return date_str, False
    try:
        return parse_date(date_str), False
    except ValueError:
        return (today or date.today()), True
