# warehouse_sim/core/season_score.py
from datetime import date
from typing import Optional, Sequence

from warehouse_sim.utils.date_utils import day_of_year_0

WEEKS_PER_CURVE = 52
DEFAULT_SEASON_SCORE = 100

def week_index_0(day_key: date) -> int:
    """0-based curve week of a day, clamped to [0, 51].

    Days 364 and 365 of the year fall into the last week.
    """
    return min(WEEKS_PER_CURVE - 1, max(0, day_of_year_0(day_key) // 7))

def clamp_score(value) -> int:
    """Clamp a raw curve value to an integer score in [0, 100]."""
    try:
        score = int(round(float(value)))
    except (TypeError, ValueError):
        return DEFAULT_SEASON_SCORE
    return min(100, max(0, score))

def score_from_curve(curve: Optional[Sequence], day_key: date) -> int:
    """Look up the season score of a day on a 52-week curve.

    Args:
        curve: Sequence of weekly values (index 0 is the first week of the year)
        day_key: Day key

    Returns:
        Score in [0, 100]; 100 when the week has no entry
    """
    if not curve:
        return DEFAULT_SEASON_SCORE

    index = week_index_0(day_key)
    if index >= len(curve) or curve[index] is None:
        return DEFAULT_SEASON_SCORE
    return clamp_score(curve[index])
