"""
stats/ratios.py

Ratio, percentage and rounding helpers with division-by-zero guards.

Formulas
--------
safe_ratio   = numerator / denominator                 (0.0 when denominator == 0)
percentage   = 100 * part / whole, rounded to 2 places (0.0 when whole == 0)
growth_rate  = 100 * (current - previous) / previous   (0.0 when previous == 0)
elasticity   = %ΔQuantity / %ΔPrice                    (0.0 on zero baseline or
                                                        unchanged price)
"""

from __future__ import annotations

_CURRENCY_PLACES = 2
_PERCENT_PLACES = 2


def safe_ratio(numerator: float, denominator: float) -> float:
    """Return ``numerator / denominator``, or ``0.0`` when the denominator is zero."""
    if denominator == 0:
        return 0.0
    return numerator / denominator


def percentage(part: float, whole: float) -> float:
    """Share of *part* in *whole* on a 0–100 scale, rounded to 2 places."""
    return round(safe_ratio(part, whole) * 100.0, _PERCENT_PLACES)


def growth_rate(current: float, previous: float) -> float:
    """Period-over-period change in percent, rounded to 2 places."""
    if previous == 0:
        return 0.0
    return round((current - previous) / previous * 100.0, _PERCENT_PLACES)


def elasticity(
    current_price: float,
    previous_price: float,
    current_qty: float,
    previous_qty: float,
) -> float:
    """
    Price elasticity of demand: relative quantity change over relative
    price change.

    Returns ``0.0`` when either baseline is zero or the price did not change.
    """
    if previous_price == 0 or previous_qty == 0 or current_price == previous_price:
        return 0.0

    qty_change = (current_qty - previous_qty) / previous_qty
    price_change = (current_price - previous_price) / previous_price
    return qty_change / price_change


def round_currency(value: float) -> float:
    return round(float(value), _CURRENCY_PLACES)
