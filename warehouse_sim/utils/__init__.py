from .date_utils import (
    normalize_day_key, parse_day_key, format_day_key, add_days,
    get_period_for_payout_day, is_payout_day
)

__all__ = [
    'normalize_day_key',
    'parse_day_key',
    'format_day_key',
    'add_days',
    'get_period_for_payout_day',
    'is_payout_day'
]
