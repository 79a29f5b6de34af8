from .calendar import (
    SalesSeasonWindow, CollectionWindow, current_sales_window,
    open_collection_windows, next_collection_window, sales_season_windows,
    active_season_key, current_collection_label, validate_calendar
)
from .season_score import week_index_0, score_from_curve
from .demand import DemandInputs, DemandBreakdown, compute_demand, awareness_multiplier
from .pricing import evaluate_price, price_index, price_multiplier
from .settlement_math import (
    seeded_float, seeded_return_rate, return_quantity, compute_settlement_line, quantize_money
)

__all__ = [
    'SalesSeasonWindow',
    'CollectionWindow',
    'current_sales_window',
    'open_collection_windows',
    'next_collection_window',
    'sales_season_windows',
    'active_season_key',
    'current_collection_label',
    'validate_calendar',
    'week_index_0',
    'score_from_curve',
    'DemandInputs',
    'DemandBreakdown',
    'compute_demand',
    'awareness_multiplier',
    'evaluate_price',
    'price_index',
    'price_multiplier',
    'seeded_float',
    'seeded_return_rate',
    'return_quantity',
    'compute_settlement_line',
    'quantize_money'
]
