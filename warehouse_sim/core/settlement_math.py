# warehouse_sim/core/settlement_math.py
import hashlib
import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict

CENT = Decimal('0.01')
RATE_PLACES = Decimal('0.000001')

def quantize_money(value) -> Decimal:
    """Round a money amount to cents, halves away from zero."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)

def seeded_float(seed: str) -> float:
    """Deterministic float in [0, 1) derived from a seed string.

    The first 52 bits of the SHA-256 digest are used, so every value is
    exactly representable as a float and identical seeds always map to
    identical values.
    """
    digest = hashlib.sha256(seed.encode('utf-8')).hexdigest()
    return int(digest[:13], 16) / float(1 << 52)

def seeded_return_rate(seed: str, rate_min, rate_max) -> Decimal:
    """Deterministic return rate in [rate_min, rate_max] for a seed.

    Args:
        seed: Stable seed string, e.g. '<settlement_id>:<product_id>'
        rate_min: Lower bound of the rate
        rate_max: Upper bound of the rate

    Returns:
        Return rate quantized to six decimal places
    """
    low = Decimal(str(rate_min))
    high = Decimal(str(rate_max))
    if high < low:
        low, high = high, low
    fraction = Decimal(repr(seeded_float(seed)))
    return (low + fraction * (high - low)).quantize(RATE_PLACES, rounding=ROUND_HALF_UP)

def return_quantity(fulfilled_qty: int, return_rate) -> int:
    """Returned units, min(fulfilled, ceil(fulfilled * rate))."""
    if fulfilled_qty <= 0:
        return 0
    raw = Decimal(fulfilled_qty) * Decimal(str(return_rate))
    return min(fulfilled_qty, int(math.ceil(raw)))

def compute_settlement_line(
    fulfilled_qty: int,
    gross_revenue,
    sale_price,
    commission_rate,
    logistics_unit_fee,
    return_rate
) -> Dict:
    """Decompose one product's period sales into fees and net revenue.

    Every money amount is rounded to cents before the net is derived, so
    gross - commission - logistics - return deduction == net exactly.

    Args:
        fulfilled_qty: Units fulfilled in the period
        gross_revenue: Sum of sale price times fulfilled units
        sale_price: Unit price used for the return deduction
        commission_rate: Platform commission rate
        logistics_unit_fee: Shipping base fee times the tier multiplier
        return_rate: Return rate of the product

    Returns:
        Dictionary with gross, commission, logistics, return quantity,
        return deduction and net revenue
    """
    gross = quantize_money(gross_revenue)
    commission = quantize_money(gross * Decimal(str(commission_rate)))
    logistics = quantize_money(Decimal(str(logistics_unit_fee)) * fulfilled_qty)
    returned = return_quantity(fulfilled_qty, return_rate)
    deduction = quantize_money(Decimal(str(sale_price)) * returned)
    net = gross - commission - logistics - deduction

    return {
        'fulfilled_qty': fulfilled_qty,
        'gross_revenue': gross,
        'commission_fee': commission,
        'logistics_fee': logistics,
        'return_qty': returned,
        'return_deduction': deduction,
        'net_revenue': net
    }
