# warehouse_sim/core/demand.py
from dataclasses import dataclass, asdict
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Optional

DEFAULT_AWARENESS_CAP = Decimal('0.5')

_ZERO = Decimal('0')
_ONE = Decimal('1')
_HUNDRED = Decimal('100')

@dataclass
class DemandInputs:
    """Snapshot of every input that shapes one listing's daily demand."""
    base_qty: Optional[int]
    positive_boost_pct: Decimal = _ZERO
    negative_boost_pct: Decimal = _ZERO
    price_multiplier: Decimal = _ONE
    price_blocked: bool = False
    season_score: int = 100
    season_blocked: bool = False
    awareness: Decimal = _ZERO

@dataclass
class DemandBreakdown:
    """Every intermediate value of a demand computation."""
    base_qty: int
    missing_base_qty: bool
    units_after_boost: Decimal
    price_multiplier: Decimal
    price_blocked: bool
    units_after_price: Decimal
    season_score: int
    season_blocked: bool
    units_after_season: Decimal
    awareness: Decimal
    awareness_multiplier: Decimal
    final_units: Decimal
    desired_qty: int

    def to_dict(self) -> Dict:
        return asdict(self)

def _dec(value, default: Decimal = _ZERO) -> Decimal:
    if value is None:
        return default
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))

def round_half_up(value: Decimal) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(value.quantize(_ONE, rounding=ROUND_HALF_UP))

def awareness_multiplier(awareness, cap: Decimal = DEFAULT_AWARENESS_CAP) -> Decimal:
    """Warehouse awareness multiplier, 1 + clamp(awareness, 0, cap)."""
    value = _dec(awareness)
    return _ONE + min(_dec(cap), max(_ZERO, value))

def apply_boosts(base_qty: int, positive_boost_pct, negative_boost_pct) -> Decimal:
    """Apply marketing boosts to the base quantity.

    A negative boost of 100% or more removes all demand; it never turns
    demand negative.
    """
    positive = _ONE + _dec(positive_boost_pct) / _HUNDRED
    negative = max(_ZERO, _ONE - _dec(negative_boost_pct) / _HUNDRED)
    return Decimal(base_qty) * positive * negative

def compute_demand(inputs: DemandInputs, awareness_cap: Decimal = DEFAULT_AWARENESS_CAP) -> DemandBreakdown:
    """Compute the desired daily quantity for one listing.

    Factors compose in a fixed order: boost, price, season, awareness.
    Arithmetic is exact decimal; only the final value is rounded.

    Args:
        inputs: Demand inputs of the listing
        awareness_cap: Upper bound of the awareness bonus

    Returns:
        DemandBreakdown with every intermediate value
    """
    missing_base_qty = inputs.base_qty is None
    base_qty = 0 if missing_base_qty else max(0, int(inputs.base_qty))

    after_boost = apply_boosts(base_qty, inputs.positive_boost_pct, inputs.negative_boost_pct)

    price_mult = _dec(inputs.price_multiplier, _ONE)
    price_blocked = bool(inputs.price_blocked) or price_mult <= 0
    after_price = _ZERO if price_blocked else after_boost * price_mult

    season_score = 100 if inputs.season_score is None else int(inputs.season_score)
    season_blocked = bool(inputs.season_blocked) or season_score <= 0
    after_season = _ZERO if season_blocked else after_price * Decimal(season_score) / _HUNDRED

    awareness = _dec(inputs.awareness)
    aware_mult = awareness_multiplier(awareness, awareness_cap)
    final_units = after_season * aware_mult

    return DemandBreakdown(
        base_qty=base_qty,
        missing_base_qty=missing_base_qty,
        units_after_boost=after_boost,
        price_multiplier=price_mult,
        price_blocked=price_blocked,
        units_after_price=after_price,
        season_score=season_score,
        season_blocked=season_blocked,
        units_after_season=after_season,
        awareness=awareness,
        awareness_multiplier=aware_mult,
        final_units=final_units,
        desired_qty=max(0, round_half_up(final_units))
    )

def clamp_to_stock(desired_qty: int, qty_on_hand: int) -> int:
    """Ordered quantity for a desired quantity and the available stock."""
    return min(desired_qty, qty_on_hand)
