"""
kpi/ecommerce.py

Ecommerce KPI formula implementation.

Expected inputs
---------------
revenue : float
    Sum of order totals in the window.
order_count : int
    Number of orders in the window.
unique_customers : int
    Number of distinct registered customers who ordered in the window.
discount_total : float
    Sum of discounts granted in the window.
refunded_orders : int
    Number of orders with status ``refunded``.
all_orders : int
    Number of orders of any status (denominator of the refund rate).
previous_revenue : float
    Revenue of the immediately preceding window of equal length.

Formulas
--------
AOV              = revenue / order_count
Purchase Freq    = order_count / unique_customers
LTV              = AOV * purchase_frequency
Refund Rate      = 100 * refunded_orders / all_orders
Discount Ratio   = 100 * discount_total / (revenue + discount_total)
Growth Rate      = 100 * (revenue - previous_revenue) / previous_revenue

Division-by-zero cases return 0.0 for the affected metric.
"""

from __future__ import annotations

from typing import Any

from kpi.base import BaseKPIFormula
from stats.ratios import growth_rate, percentage, round_currency, safe_ratio


class EcommerceKPIFormula(BaseKPIFormula):
    """
    Deterministic ecommerce KPI calculations with safe division-by-zero handling.

    All arithmetic is self-contained.  No I/O, no logging, no side effects.
    """

    inputs = (
        "revenue",
        "order_count",
        "unique_customers",
        "discount_total",
        "refunded_orders",
        "all_orders",
        "previous_revenue",
    )

    def calculate(self, inputs: dict[str, Any]) -> dict[str, float]:
        """
        Compute AOV, Purchase Frequency, LTV, Refund Rate, Discount Ratio
        and Growth Rate from *inputs*.

        Returns
        -------
        dict
            Keys: ``revenue``, ``aov``, ``purchase_frequency``, ``ltv``,
            ``refund_rate``, ``discount_ratio``, ``growth_rate``.
        """
        values = {name: float(inputs.get(name) or 0) for name in self.inputs}

        revenue = values["revenue"]
        aov = _aov(revenue, values["order_count"])
        purchase_frequency = _purchase_frequency(values["order_count"], values["unique_customers"])

        return {
            "revenue": round_currency(revenue),
            "aov": round_currency(aov),
            "purchase_frequency": round(purchase_frequency, 4),
            "ltv": round_currency(_ltv(aov, purchase_frequency)),
            "refund_rate": percentage(values["refunded_orders"], values["all_orders"]),
            "discount_ratio": _discount_ratio(values["discount_total"], revenue),
            "growth_rate": growth_rate(revenue, values["previous_revenue"]),
        }


# ---------------------------------------------------------------------------
# Pure formula functions
# ---------------------------------------------------------------------------


def _aov(revenue: float, order_count: float) -> float:
    """AOV = revenue / order_count."""
    return safe_ratio(revenue, order_count)


def _purchase_frequency(order_count: float, unique_customers: float) -> float:
    """Purchase Frequency = order_count / unique_customers."""
    return safe_ratio(order_count, unique_customers)


def _ltv(aov: float, purchase_frequency: float) -> float:
    """LTV = AOV * purchase_frequency."""
    return aov * purchase_frequency


def _discount_ratio(discount_total: float, revenue: float) -> float:
    """
    Discount Ratio = discount_total / gross value before discounts.

    Order totals are already net of discounts, so the gross value is
    ``revenue + discount_total``.
    """
    return percentage(discount_total, revenue + discount_total)
