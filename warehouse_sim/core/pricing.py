# warehouse_sim/core/pricing.py
from decimal import Decimal, InvalidOperation
from typing import Optional, Tuple

NEUTRAL_INDEX = Decimal('1')

# (exclusive lower bound, multiplier), checked from the most expensive
_EXPENSIVE_STEPS = [
    (Decimal('1.15'), Decimal('0')),
    (Decimal('1.10'), Decimal('0.60')),
    (Decimal('1.05'), Decimal('0.85')),
]

# (inclusive upper bound, multiplier), checked from the cheapest
_CHEAP_STEPS = [
    (Decimal('0.70'), Decimal('1.30')),
    (Decimal('0.80'), Decimal('1.20')),
    (Decimal('0.90'), Decimal('1.10')),
]

def _to_decimal(value) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    return result if result.is_finite() else None

def normal_price(suggested_sale_price, zone_multiplier) -> Decimal:
    """Reference price of a product in a market zone."""
    suggested = _to_decimal(suggested_sale_price) or Decimal('0')
    multiplier = _to_decimal(zone_multiplier)
    if multiplier is None:
        multiplier = Decimal('1')
    return suggested * multiplier

def _raw_index(sale_price, normal) -> Decimal:
    sale = _to_decimal(sale_price)
    reference = _to_decimal(normal)
    if sale is None or reference is None or reference <= 0:
        return NEUTRAL_INDEX
    return sale / reference

def price_index(sale_price, normal) -> Decimal:
    """Ratio of the listing price to the zone's normal price, to 4 places.

    Returns 1 when the normal price is not positive or the ratio is undefined.
    """
    return _raw_index(sale_price, normal).quantize(Decimal('0.0001'))

def price_multiplier(index) -> Decimal:
    """Stepped demand multiplier for a price index.

    Listings more than 15% above the normal price are blocked (multiplier 0);
    cheaper listings get a bonus of up to 30%.
    """
    value = _to_decimal(index)
    if value is None:
        return Decimal('1')

    for bound, multiplier in _EXPENSIVE_STEPS:
        if value > bound:
            return multiplier

    for bound, multiplier in _CHEAP_STEPS:
        if value <= bound:
            return multiplier

    return Decimal('1')

def evaluate_price(sale_price, suggested_sale_price, zone_multiplier) -> Tuple[Decimal, Decimal, bool]:
    """Compute price index, multiplier and blocked flag for a listing.

    Returns:
        Tuple (price_index, price_multiplier, price_blocked)
    """
    raw = _raw_index(sale_price, normal_price(suggested_sale_price, zone_multiplier))
    # Steps compare the unrounded ratio; only the stored snapshot is rounded
    multiplier = price_multiplier(raw)
    return raw.quantize(Decimal('0.0001')), multiplier, multiplier == 0
