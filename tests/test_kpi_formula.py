"""
tests/test_kpi_formula.py

Pytest unit tests for EcommerceKPIFormula and the MetricResult contract.

All tests are pure Python: no store, no I/O, literal inputs only.

Coverage
--------
- Normal KPI calculation
- Zero order / zero customer edge cases
- Missing inputs treated as zero
- Growth rate with and without a baseline
- MetricResult structure contracts
- Statelessness across multiple calls
"""

from __future__ import annotations

import pytest

from kpi.ecommerce import EcommerceKPIFormula
from kpi.result import MetricResult, ResultStatus


@pytest.fixture()
def formula() -> EcommerceKPIFormula:
    return EcommerceKPIFormula()


@pytest.fixture()
def inputs() -> dict[str, float]:
    return {
        "revenue": 1000.0,
        "order_count": 20,
        "unique_customers": 8,
        "discount_total": 250.0,
        "refunded_orders": 2,
        "all_orders": 25,
        "previous_revenue": 800.0,
    }


# ---------------------------------------------------------------------------
# MetricResult contract
# ---------------------------------------------------------------------------


class TestMetricResultContract:
    def test_is_frozen(self) -> None:
        result = MetricResult(metric="total_revenue", value=10.0, unit="currency")
        with pytest.raises((AttributeError, TypeError)):
            result.value = 999.0  # type: ignore[misc]

    def test_defaults(self) -> None:
        result = MetricResult(metric="total_revenue", value=0.0, unit="currency")
        assert result.status == ResultStatus.OK
        assert result.ok
        assert result.error is None
        assert result.computed_at.tzinfo is not None

    def test_non_ok_status(self) -> None:
        result = MetricResult(
            metric="refund_rate", value=0.0, unit="rate",
            status=ResultStatus.UNAVAILABLE, error="platform not ready",
        )
        assert not result.ok
        assert result.value == 0.0


# ---------------------------------------------------------------------------
# EcommerceKPIFormula
# ---------------------------------------------------------------------------


class TestEcommerceKPIFormula:
    def test_normal_values(self, formula, inputs) -> None:
        out = formula.calculate(inputs)
        assert out["revenue"] == 1000.0
        assert out["aov"] == 50.0
        assert out["purchase_frequency"] == 2.5
        assert out["ltv"] == 125.0
        assert out["refund_rate"] == 8.0
        assert out["discount_ratio"] == 20.0
        assert out["growth_rate"] == 25.0

    def test_keys(self, formula, inputs) -> None:
        assert set(formula.calculate(inputs)) == {
            "revenue", "aov", "purchase_frequency", "ltv",
            "refund_rate", "discount_ratio", "growth_rate",
        }

    def test_zero_orders(self, formula, inputs) -> None:
        out = formula.calculate({**inputs, "order_count": 0})
        assert out["aov"] == 0.0
        assert out["purchase_frequency"] == 0.0
        assert out["ltv"] == 0.0

    def test_zero_customers(self, formula, inputs) -> None:
        out = formula.calculate({**inputs, "unique_customers": 0})
        assert out["purchase_frequency"] == 0.0
        assert out["ltv"] == 0.0
        assert out["aov"] == 50.0

    def test_no_previous_revenue(self, formula, inputs) -> None:
        assert formula.calculate({**inputs, "previous_revenue": 0.0})["growth_rate"] == 0.0

    def test_negative_growth(self, formula, inputs) -> None:
        assert formula.calculate({**inputs, "previous_revenue": 2000.0})["growth_rate"] == -50.0

    def test_missing_inputs_are_zero(self, formula) -> None:
        assert all(v == 0.0 for v in formula.calculate({}).values())

    def test_none_inputs_are_zero(self, formula, inputs) -> None:
        out = formula.calculate({**inputs, "discount_total": None})
        assert out["discount_ratio"] == 0.0

    def test_stateless(self, formula, inputs) -> None:
        assert formula.calculate(inputs) == formula.calculate(inputs)
