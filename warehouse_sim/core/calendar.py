# warehouse_sim/core/calendar.py
from collections import namedtuple
from datetime import date
from functools import lru_cache
from typing import Dict, List, Optional, Tuple

from warehouse_sim.exceptions import CalendarError
from warehouse_sim.models import Hemisphere
from warehouse_sim.utils.date_utils import normalize_day_key, format_day_key

CALENDAR_START = date(2025, 9, 10)
CALENDAR_END = date(2030, 9, 5)

SalesSeasonWindow = namedtuple(
    'SalesSeasonWindow', ['hemisphere', 'season', 'label', 'start', 'end']
)

CollectionWindow = namedtuple(
    'CollectionWindow', ['hemisphere', 'cycle_key', 'label', 'start', 'end']
)

SeasonWindows = namedtuple('SeasonWindows', ['current', 'next'])

# (season, label, start, end)
_SALES_NORTH = [
    ('WINTER', 'FW-25/26', '2025-09-10', '2026-03-10'),
    ('SUMMER', 'SS-26', '2026-03-11', '2026-09-05'),
    ('WINTER', 'FW-26/27', '2026-09-06', '2027-03-10'),
    ('SUMMER', 'SS-27', '2027-03-11', '2027-09-05'),
    ('WINTER', 'FW-27/28', '2027-09-06', '2028-03-10'),
    ('SUMMER', 'SS-28', '2028-03-11', '2028-09-05'),
    ('WINTER', 'FW-28/29', '2028-09-06', '2029-03-10'),
    ('SUMMER', 'SS-29', '2029-03-11', '2029-09-05'),
    ('WINTER', 'FW-29/30', '2029-09-06', '2030-03-10'),
    ('SUMMER', 'SS-30', '2030-03-11', '2030-09-05'),
]

_SALES_SOUTH = [
    ('SUMMER', 'SS-25/26', '2025-09-15', '2026-02-28'),
    ('WINTER', 'FW-26', '2026-03-01', '2026-09-02'),
    ('SUMMER', 'SS-26/27', '2026-09-03', '2027-02-28'),
    ('WINTER', 'FW-27', '2027-03-01', '2027-09-02'),
    ('SUMMER', 'SS-27/28', '2027-09-03', '2028-02-28'),
    ('WINTER', 'FW-28', '2028-03-01', '2028-09-02'),
    ('SUMMER', 'SS-28/29', '2028-09-03', '2029-02-28'),
    ('WINTER', 'FW-29', '2029-03-01', '2029-09-02'),
    ('SUMMER', 'SS-29/30', '2029-09-03', '2030-02-28'),
    ('WINTER', 'FW-30', '2030-03-01', '2030-09-02'),
]

# (cycle_key, label, start, end); windows of consecutive cycles overlap
_COLLECTION_NORTH = [
    ('FW2526', 'FW-25/26', '2025-09-10', '2026-02-25'),
    ('SS26', 'SS-26', '2025-10-01', '2026-08-25'),
    ('FW2627', 'FW-26/27', '2026-04-01', '2027-02-25'),
    ('SS27', 'SS-27', '2026-10-01', '2027-08-25'),
    ('FW2728', 'FW-27/28', '2027-04-01', '2028-02-25'),
    ('SS28', 'SS-28', '2027-10-01', '2028-08-25'),
    ('FW2829', 'FW-28/29', '2028-04-01', '2029-02-25'),
    ('SS29', 'SS-29', '2028-10-01', '2029-08-25'),
    ('FW2930', 'FW-29/30', '2029-04-01', '2030-02-25'),
    ('SS30', 'SS-30', '2029-10-01', '2030-08-25'),
]

_COLLECTION_SOUTH = [
    ('SS2526', 'SS-25/26', '2025-09-10', '2026-02-20'),
    ('FW26', 'FW-26', '2025-10-05', '2026-08-15'),
    ('SS2627', 'SS-26/27', '2026-04-10', '2027-02-20'),
    ('FW27', 'FW-27', '2026-10-05', '2027-08-15'),
    ('SS2728', 'SS-27/28', '2027-04-10', '2028-02-20'),
    ('FW28', 'FW-28', '2027-10-05', '2028-08-15'),
    ('SS2829', 'SS-28/29', '2028-04-10', '2029-02-20'),
    ('FW29', 'FW-29', '2028-10-05', '2029-08-15'),
    ('SS2930', 'SS-29/30', '2029-04-10', '2030-02-20'),
    ('FW30', 'FW-30', '2029-10-05', '2030-08-15'),
]

def _to_hemisphere(hemisphere) -> Hemisphere:
    if isinstance(hemisphere, Hemisphere):
        return hemisphere
    return Hemisphere.from_string(hemisphere)

@lru_cache(maxsize=None)
def _sales_windows(hemisphere: Hemisphere) -> Tuple[SalesSeasonWindow, ...]:
    rows = _SALES_NORTH if hemisphere == Hemisphere.NORTH else _SALES_SOUTH
    windows = [
        SalesSeasonWindow(hemisphere, season, label, date.fromisoformat(start), date.fromisoformat(end))
        for season, label, start, end in rows
    ]
    return tuple(sorted(windows, key=lambda w: w.start))

@lru_cache(maxsize=None)
def _collection_windows(hemisphere: Hemisphere) -> Tuple[CollectionWindow, ...]:
    rows = _COLLECTION_NORTH if hemisphere == Hemisphere.NORTH else _COLLECTION_SOUTH
    windows = [
        CollectionWindow(hemisphere, cycle_key, label, date.fromisoformat(start), date.fromisoformat(end))
        for cycle_key, label, start, end in rows
    ]
    return tuple(sorted(windows, key=lambda w: w.start))

def sales_windows(hemisphere) -> List[SalesSeasonWindow]:
    """All sales windows of a hemisphere, sorted by start."""
    return list(_sales_windows(_to_hemisphere(hemisphere)))

def collection_windows(hemisphere) -> List[CollectionWindow]:
    """All collection windows of a hemisphere, sorted by start."""
    return list(_collection_windows(_to_hemisphere(hemisphere)))

def is_in_supported_range(day_key) -> bool:
    """Check whether a day key lies inside the supported calendar range."""
    day = normalize_day_key(day_key)
    return CALENDAR_START <= day <= CALENDAR_END

def current_sales_window(day_key, hemisphere) -> Optional[SalesSeasonWindow]:
    """Get the sales window that contains a day.

    Args:
        day_key: Day key (date, datetime or ISO string)
        hemisphere: Hemisphere enum or 'NORTH' / 'SOUTH'

    Returns:
        The containing window, or None outside the supported range or in a gap
    """
    day = normalize_day_key(day_key)
    if not CALENDAR_START <= day <= CALENDAR_END:
        return None

    for window in _sales_windows(_to_hemisphere(hemisphere)):
        if window.start <= day <= window.end:
            return window
    return None

def open_collection_windows(day_key, hemisphere) -> List[CollectionWindow]:
    """Get every collection window that is open on a day.

    Collections of consecutive cycles overlap, so zero, one or two windows
    can be returned, ordered by start.
    """
    day = normalize_day_key(day_key)
    return [
        window for window in _collection_windows(_to_hemisphere(hemisphere))
        if window.start <= day <= window.end
    ]

def next_collection_window(day_key, hemisphere) -> Optional[CollectionWindow]:
    """Get the first collection window starting strictly after a day."""
    day = normalize_day_key(day_key)
    for window in _collection_windows(_to_hemisphere(hemisphere)):
        if window.start > day:
            return window
    return None

def sales_season_windows(day_key, hemisphere, strict: bool = True) -> SeasonWindows:
    """Get the current and next sales windows for a day.

    Args:
        day_key: Day key
        hemisphere: Hemisphere
        strict: Raise when the day has no current window

    Returns:
        SeasonWindows(current, next); either may be None when not strict

    Raises:
        CalendarError in strict mode when no window contains the day
    """
    day = normalize_day_key(day_key)
    windows = _sales_windows(_to_hemisphere(hemisphere))

    current = current_sales_window(day, hemisphere)
    if current is None:
        if strict:
            raise CalendarError(
                f"No sales season window for {format_day_key(day)}",
                details={'day_key': format_day_key(day), 'hemisphere': _to_hemisphere(hemisphere).value}
            )
        upcoming = next((w for w in windows if w.start > day), None)
        return SeasonWindows(None, upcoming)

    index = windows.index(current)
    upcoming = windows[index + 1] if index + 1 < len(windows) else None
    return SeasonWindows(current, upcoming)

def active_season_key(day_key, hemisphere) -> Optional[str]:
    """Season key (WINTER / SUMMER) active on a day, or None."""
    window = current_sales_window(day_key, hemisphere)
    return window.season if window else None

def current_collection_label(day_key, hemisphere) -> Optional[str]:
    """Label of the most recently opened collection on a day, or None."""
    windows = open_collection_windows(day_key, hemisphere)
    return windows[-1].label if windows else None

def validate_calendar() -> Dict[str, List[str]]:
    """Check the static tables for ordering and overlap problems.

    Sales windows must be ordered, have start <= end and never overlap.
    Collection windows must only be ordered with start <= end.

    Returns:
        Dictionary mapping table name to a list of problems (empty when valid)
    """
    problems = {}

    for hemisphere in Hemisphere:
        name = f"sales_{hemisphere.value.lower()}"
        issues = []
        previous = None
        for window in _sales_windows(hemisphere):
            if window.start > window.end:
                issues.append(f"{window.label}: start after end")
            if previous is not None and window.start <= previous.end:
                issues.append(f"{window.label}: overlaps {previous.label}")
            previous = window
        problems[name] = issues

        name = f"collection_{hemisphere.value.lower()}"
        issues = []
        for window in _collection_windows(hemisphere):
            if window.start > window.end:
                issues.append(f"{window.cycle_key}: start after end")
        problems[name] = issues

    return problems
