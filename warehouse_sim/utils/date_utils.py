# warehouse_sim/utils/date_utils.py
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional, Tuple, Union
import calendar
import re

from warehouse_sim.exceptions import CalendarError, SettlementPeriodError

DayKeyLike = Union[date, datetime, str]

_DAY_KEY_PATTERN = re.compile(r'^(\d{4})-(\d{2})-(\d{2})$')

def parse_day_key(value: str) -> date:
    """Parse a 'YYYY-MM-DD' string into a day key.

    Args:
        value: ISO date string

    Returns:
        Day key as a date

    Raises:
        CalendarError if the string is not a valid calendar date
    """
    trimmed = value.strip()
    match = _DAY_KEY_PATTERN.match(trimmed)
    if not match:
        raise CalendarError(f"Invalid day key string '{value}'. Use YYYY-MM-DD.")

    year, month, day = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        raise CalendarError(f"Invalid calendar date '{value}'.")

def normalize_day_key(value: DayKeyLike) -> date:
    """Normalize any date-like value to a day key (calendar date in UTC).

    Naive datetimes are taken to already be UTC; aware datetimes are
    converted to UTC before the date is taken.

    Args:
        value: date, datetime or 'YYYY-MM-DD' string

    Returns:
        Day key as a date
    """
    if isinstance(value, str):
        return parse_day_key(value)

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()

    if isinstance(value, date):
        return value

    raise CalendarError(f"Day key must be a date, datetime or YYYY-MM-DD string, got {type(value).__name__}")

def format_day_key(day_key: date) -> str:
    """Format a day key as 'YYYY-MM-DD'."""
    return day_key.isoformat()

def add_days(day_key: date, days: int) -> date:
    """Add a number of days to a day key.

    Args:
        day_key: Base day key
        days: Number of days to add (may be negative)

    Returns:
        Resulting day key
    """
    return day_key + timedelta(days=days)

def day_of_year_0(day_key: date) -> int:
    """0-based day of year (January 1st is 0)."""
    return day_key.timetuple().tm_yday - 1

def get_month_end(year: int, month: int) -> date:
    """Get the last day of a month."""
    return date(year, month, calendar.monthrange(year, month)[1])

def get_cycle_key(day_key: date) -> str:
    """Get the YYYY-MM cycle key of a day key."""
    return f"{day_key.year}-{day_key.month:02d}"

def get_period_for_payout_day(payout_day_key: date) -> Tuple[date, date]:
    """Get the closed settlement period paid out on a payout day.

    Payout on the 5th settles the second half of the previous month
    (16th to month end); payout on the 20th settles the first half of
    the same month (1st to 15th). Both ends are inclusive.

    Args:
        payout_day_key: Payout day key

    Returns:
        Tuple with period start and period end

    Raises:
        SettlementPeriodError if the day has no canonical period
    """
    if payout_day_key.day == 5:
        if payout_day_key.month == 1:
            year, month = payout_day_key.year - 1, 12
        else:
            year, month = payout_day_key.year, payout_day_key.month - 1
        return date(year, month, 16), get_month_end(year, month)

    if payout_day_key.day == 20:
        return (
            date(payout_day_key.year, payout_day_key.month, 1),
            date(payout_day_key.year, payout_day_key.month, 15)
        )

    raise SettlementPeriodError(
        f"Day {format_day_key(payout_day_key)} has no settlement period mapping",
        details={'payout_day_key': format_day_key(payout_day_key), 'supported_days': [5, 20]}
    )

def is_payout_day(day_key: date, payout_days: Optional[Iterable[int]] = None) -> bool:
    """Check whether a day key falls on one of the configured payout days.

    Args:
        day_key: Day key to check
        payout_days: Days of month; defaults to the 5th and 20th

    Returns:
        True if the day is a payout day
    """
    days = list(payout_days) if payout_days else [5, 20]
    return day_key.day in days

def iter_days(start: date, end: date):
    """Iterate day keys from start to end inclusive."""
    current = start
    while current <= end:
        yield current
        current = add_days(current, 1)
