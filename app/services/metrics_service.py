"""
app/services/metrics_service.py

Public library surface of the commerce metrics engine.

Every public method follows the same pipeline:

    AvailabilityGuard  – platform present?  no → safe default, status "unavailable"
    resolve_window     – lookback / explicit range → half-open UTC window
    compute            – AggregationEngine, stats, funnel, cohort, RFM
    MetricResult       – value + unit + status ("ok" | "empty" | "unavailable" | "error")

Failure contract
----------------
- Platform unavailable  → documented safe default, status ``"unavailable"``
- No data in scope      → zero value, status ``"empty"``
- Invalid scope         → empty window / empty status set → status ``"empty"``
- Event store failure   → logged, safe default, status ``"error"``; re-raised
                          instead when ``raise_on_adapter_failure`` is set
- Unknown metric, dimension or field name → ``ValueError`` (programming error)

Scope parameters
----------------
Windowed methods accept ``lookback_days`` or an explicit ``start`` / ``end``
range. With neither, the configured default lookback applies, except for
lifetime metrics (CLV, cohorts) which then cover all history.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from datetime import date, datetime, timedelta
from typing import Any

from app.availability import AvailabilityGuard
from app.config import MetricsSettings, get_metrics_settings
from app.logging_utils import log_event
from app.schemas.metrics import (
    CustomerTypeShare,
    FunnelReport,
    NewVsReturning,
    RevenueTrend,
    RFMThresholds,
    SegmentRule,
)
from app.services.aggregation_service import AggregationEngine
from app.services.metrics_catalog import PAID, MetricDefinition, get_metric
from app.windowing import resolve_window, status_filter, utc_now
from forecast.classifier import TrendClassifier
from forecast.regression import LinearRegressionForecast
from funnel.calculator import FunnelCalculator
from kpi.ecommerce import EcommerceKPIFormula
from kpi.result import MetricResult, ResultStatus
from segmentation.cohorts import CohortAnalyzer, churn_rate
from segmentation.rfm import RFMSegmenter
from stats.descriptive import mean, median, std_dev
from stats.ratios import elasticity, growth_rate, percentage, round_currency, safe_ratio
from store.aggregates import Aggregate, Unit
from store.base import EventStore
from store.errors import EventStoreError
from store.query import Entity, QueryFilter, TimeWindow

logger = logging.getLogger(__name__)

#: ``revenue_by`` dimension → catalog row.
REVENUE_DIMENSIONS: dict[str, str] = {
    "product": "revenue_by_product",
    "category": "revenue_by_category",
    "customer": "revenue_by_customer",
    "country": "revenue_by_country",
    "payment_method": "revenue_by_payment_method",
    "coupon": "revenue_by_coupon",
    "day": "daily_revenue",
}

_TOP_PRODUCT_METRICS: dict[str, str] = {
    "revenue": "revenue_by_product",
    "units": "units_by_product",
}

_UNAVAILABLE = "Commerce platform is not available."

# (value, has_data) as returned by every compute callable.
_Computed = tuple[Any, bool]


class MetricsService:
    """
    Computes commerce metrics over an :class:`EventStore`.

    Stateless apart from the injected guard's cached flag; safe to share
    across threads.

    Parameters
    ----------
    store:
        Read-only event store.
    guard:
        Availability guard built once at startup.
    settings:
        Tunables; defaults to :func:`get_metrics_settings`.
    clock:
        Zero-argument callable returning the current UTC instant.
    """

    def __init__(
        self,
        store: EventStore,
        guard: AvailabilityGuard,
        settings: MetricsSettings | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._engine = AggregationEngine(store)
        self._guard = guard
        self._settings = settings or get_metrics_settings()
        self._clock = clock or utc_now

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def compute(
        self,
        name: str,
        lookback_days: float | None = None,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
        states: Sequence[str] | None = None,
    ) -> MetricResult:
        """
        Compute the catalog metric *name* over the given scope.

        *states* overrides the logical states of the catalog row.
        """
        definition = get_metric(name)

        def _compute(window: TimeWindow) -> _Computed:
            return self._catalog_value(definition, window, states)

        return self._windowed(
            definition.name, definition.unit, definition.zero, _compute,
            lookback_days, start, end,
        )

    # ------------------------------------------------------------------
    # Revenue
    # ------------------------------------------------------------------

    def total_revenue(
        self,
        lookback_days: float | None = None,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
        states: Sequence[str] | None = None,
    ) -> MetricResult:
        return self.compute("total_revenue", lookback_days, start=start, end=end, states=states)

    def net_revenue(
        self,
        lookback_days: float | None = None,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> MetricResult:
        return self.compute("net_revenue", lookback_days, start=start, end=end)

    def average_order_value(
        self,
        lookback_days: float | None = None,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> MetricResult:
        return self.compute("average_order_value", lookback_days, start=start, end=end)

    def median_order_value(
        self,
        lookback_days: float | None = None,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> MetricResult:
        def _compute(window: TimeWindow) -> _Computed:
            totals = [o.total for o in self._orders(window, PAID)]
            return round_currency(median(totals)), bool(totals)

        return self._windowed(
            "median_order_value", Unit.CURRENCY, 0.0, _compute, lookback_days, start, end,
        )

    def order_value_std_dev(
        self,
        lookback_days: float | None = None,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> MetricResult:
        def _compute(window: TimeWindow) -> _Computed:
            totals = [o.total for o in self._orders(window, PAID)]
            return round_currency(std_dev(totals)), bool(totals)

        return self._windowed(
            "order_value_std_dev", Unit.CURRENCY, 0.0, _compute, lookback_days, start, end,
        )

    def revenue_by(
        self,
        dimension: str,
        lookback_days: float | None = None,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> MetricResult:
        """
        Revenue per product, category, customer, country, payment method,
        coupon or day. Discount granted per coupon is ``discount_by_coupon``.
        """
        if dimension not in REVENUE_DIMENSIONS:
            raise ValueError(
                f"Unknown dimension {dimension!r}. Allowed: {sorted(REVENUE_DIMENSIONS)}."
            )
        return self.compute(REVENUE_DIMENSIONS[dimension], lookback_days, start=start, end=end)

    def top_products(
        self,
        limit: int = 10,
        by: str = "revenue",
        lookback_days: float | None = None,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> MetricResult:
        """Product ids ranked by revenue or units, highest first (ties by id)."""
        if by not in _TOP_PRODUCT_METRICS:
            raise ValueError(f"Unknown ranking {by!r}. Allowed: {sorted(_TOP_PRODUCT_METRICS)}.")
        definition = get_metric(_TOP_PRODUCT_METRICS[by])

        def _compute(window: TimeWindow) -> _Computed:
            values, has_data = self._catalog_value(definition, window)
            ranked = sorted(values.items(), key=lambda kv: (-kv[1], str(kv[0])))
            return [product_id for product_id, _ in ranked[: max(0, limit)]], has_data

        return self._windowed(
            f"top_products_by_{by}", Unit.IDENTIFIERS, [], _compute, lookback_days, start, end,
        )

    def daily_revenue(
        self,
        lookback_days: float | None = None,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> MetricResult:
        return self.compute("daily_revenue", lookback_days, start=start, end=end)

    def revenue_growth(
        self,
        lookback_days: float | None = None,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> MetricResult:
        """Revenue change versus the preceding window of equal length, in percent."""
        definition = get_metric("total_revenue")

        def _compute(window: TimeWindow) -> _Computed:
            current, current_data = self._catalog_value(definition, window)
            previous, previous_data = self._catalog_value(definition, window.previous())
            return growth_rate(current, previous), current_data or previous_data

        return self._windowed("revenue_growth", Unit.RATE, 0.0, _compute, lookback_days, start, end)

    def forecast_revenue(
        self,
        horizon_days: int | None = None,
        lookback_days: float | None = None,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> MetricResult:
        """
        Projected revenue for the next *horizon_days* days from a least-squares
        line over the daily revenue of the window.

        Fewer than 5 days of history project ``0.0``; a negative projection
        is clamped to ``0.0``.
        """
        horizon = self._settings.forecast_horizon_days if horizon_days is None else horizon_days

        def _compute(window: TimeWindow) -> _Computed:
            series, has_data = self._daily_series(window)
            projection = LinearRegressionForecast().forecast(series, horizon)
            return round_currency(max(0.0, projection["total"])), has_data

        return self._windowed(
            "forecast_revenue", Unit.CURRENCY, 0.0, _compute, lookback_days, start, end,
        )

    def revenue_trend(
        self,
        horizon_days: int | None = None,
        lookback_days: float | None = None,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> MetricResult:
        """Fitted daily revenue line with its trend label; ``None`` when it cannot be fitted."""
        horizon = self._settings.forecast_horizon_days if horizon_days is None else horizon_days

        def _compute(window: TimeWindow) -> _Computed:
            series, has_data = self._daily_series(window)
            projection = LinearRegressionForecast().forecast(series, max(1, horizon))
            if not has_data or projection.get("error"):
                return None, False

            average = mean(y for _, y in series)
            return RevenueTrend(
                trend=TrendClassifier().classify(projection["slope"], average),
                slope=projection["slope"],
                intercept=projection["intercept"],
                average_daily_revenue=round_currency(average),
                horizon_days=max(1, horizon),
                forecast_total=round_currency(max(0.0, projection["total"])),
            ), True

        return self._windowed(
            "revenue_trend", Unit.RECORD, None, _compute, lookback_days, start, end,
        )

    # ------------------------------------------------------------------
    # Refunds & discounts
    # ------------------------------------------------------------------

    def refund_rate(
        self,
        lookback_days: float | None = None,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> MetricResult:
        """Share of orders (any status) whose status is ``refunded``, in percent."""

        def _compute(window: TimeWindow) -> _Computed:
            refunded = self._count(Entity.ORDERS, window, ("refunded",))
            all_orders = self._count(Entity.ORDERS, window, ("any",))
            return percentage(refunded, all_orders), all_orders > 0

        return self._windowed("refund_rate", Unit.RATE, 0.0, _compute, lookback_days, start, end)

    def refund_amount_ratio(
        self,
        lookback_days: float | None = None,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> MetricResult:
        """Refunded amount over the gross total of paid and refunded orders, in percent."""

        def _compute(window: TimeWindow) -> _Computed:
            query_filter = self._status_filter(Entity.ORDERS, ("paid", "refunded"))
            refunded = self._engine.aggregate(
                Entity.ORDERS, Aggregate.sum("refunded_total"),
                window=window, query_filter=query_filter,
            )
            gross = self._engine.aggregate(
                Entity.ORDERS, Aggregate.sum("total"),
                window=window, query_filter=query_filter,
            )
            return percentage(refunded, gross), gross > 0

        return self._windowed(
            "refund_amount_ratio", Unit.RATE, 0.0, _compute, lookback_days, start, end,
        )

    def discount_ratio(
        self,
        lookback_days: float | None = None,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> MetricResult:
        """Discount granted over the pre-discount value of paid orders, in percent."""

        def _compute(window: TimeWindow) -> _Computed:
            discount, _ = self._catalog_value(get_metric("discount_total"), window)
            revenue, has_data = self._catalog_value(get_metric("total_revenue"), window)
            return percentage(discount, revenue + discount), has_data

        return self._windowed("discount_ratio", Unit.RATE, 0.0, _compute, lookback_days, start, end)

    def coupon_usage(
        self,
        lookback_days: float | None = None,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> MetricResult:
        """Paid orders per applied coupon code."""
        return self.compute("orders_by_coupon", lookback_days, start=start, end=end)

    def coupon_redemptions(self, include_expired: bool = True) -> MetricResult:
        """Platform-recorded usage count per coupon code."""

        def _compute() -> _Computed:
            now = self._clock()
            coupons = self._engine.records(Entity.COUPONS)
            usage = {
                c.code: int(c.usage_count)
                for c in sorted(coupons, key=lambda c: c.code)
                if include_expired or not c.is_expired(now)
            }
            return usage, bool(usage)

        return self._guarded("coupon_redemptions", Unit.COUNT, {}, _compute)

    # ------------------------------------------------------------------
    # Customers
    # ------------------------------------------------------------------

    def unique_customers(
        self,
        lookback_days: float | None = None,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> MetricResult:
        return self.compute("unique_customers", lookback_days, start=start, end=end)

    def customer_type_share(
        self,
        lookback_days: float | None = None,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> MetricResult:
        """Percent of paid orders placed by guests versus registered customers."""
        definition = get_metric("orders_by_customer_kind")

        def _compute(window: TimeWindow) -> _Computed:
            counts, has_data = self._catalog_value(definition, window)
            total = sum(counts.values())
            return CustomerTypeShare(
                guest=percentage(counts.get("guest", 0), total),
                registered=percentage(counts.get("registered", 0), total),
            ), has_data

        return self._windowed(
            "customer_type_share", Unit.RECORD, CustomerTypeShare(), _compute,
            lookback_days, start, end,
        )

    def new_vs_returning(
        self,
        lookback_days: float | None = None,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> MetricResult:
        """
        Customers ordering in the window, split by whether they had a paid
        order before the window started.
        """

        def _compute(window: TimeWindow) -> _Computed:
            customers = {
                o.customer_id for o in self._orders(window, PAID) if o.customer_id is not None
            }
            if not customers:
                return NewVsReturning(), False

            returning = 0
            if window.start is not None:
                history = TimeWindow(start=None, end=window.start)
                returning = int(self._engine.aggregate(
                    Entity.ORDERS,
                    Aggregate.count_distinct("customer_id"),
                    window=history,
                    query_filter=QueryFilter.build(
                        statuses=status_filter(PAID, Entity.ORDERS),
                        customer_ids=customers,
                    ),
                ))
            new = len(customers) - returning
            return NewVsReturning(
                new=new,
                returning=returning,
                new_share=percentage(new, len(customers)),
                returning_share=percentage(returning, len(customers)),
            ), True

        return self._windowed(
            "new_vs_returning", Unit.RECORD, NewVsReturning(), _compute,
            lookback_days, start, end,
        )

    def repeat_purchase_rate(
        self,
        lookback_days: float | None = None,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> MetricResult:
        """Percent of registered customers with two or more paid orders in the window."""
        definition = get_metric("orders_by_customer")

        def _compute(window: TimeWindow) -> _Computed:
            per_customer, has_data = self._catalog_value(definition, window)
            repeaters = sum(1 for count in per_customer.values() if count >= 2)
            return percentage(repeaters, len(per_customer)), has_data

        return self._windowed(
            "repeat_purchase_rate", Unit.RATE, 0.0, _compute, lookback_days, start, end,
        )

    def customer_lifetime_value(
        self,
        lookback_days: float | None = None,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> MetricResult:
        """
        Average spend per registered customer (AOV × purchase frequency over
        registered customers' paid orders). All history by default.
        """

        def _compute(window: TimeWindow) -> _Computed:
            spend, has_data = self._catalog_value(get_metric("revenue_by_customer"), window)
            orders, _ = self._catalog_value(get_metric("orders_by_customer"), window)
            kpis = EcommerceKPIFormula().calculate({
                "revenue": sum(spend.values()),
                "order_count": sum(orders.values()),
                "unique_customers": len(spend),
            })
            return kpis["ltv"], has_data

        return self._windowed(
            "customer_lifetime_value", Unit.CURRENCY, 0.0, _compute,
            lookback_days, start, end, lifetime=True,
        )

    def clv_by_customer(
        self,
        lookback_days: float | None = None,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> MetricResult:
        """Paid spend per registered customer. All history by default."""
        definition = get_metric("revenue_by_customer")

        def _compute(window: TimeWindow) -> _Computed:
            return self._catalog_value(definition, window)

        return self._windowed(
            "clv_by_customer", Unit.CURRENCY, {}, _compute,
            lookback_days, start, end, lifetime=True,
        )

    def churn_rate(self, churn_window_days: int | None = None) -> MetricResult:
        """
        Percent of customers, among those whose first paid order is at least
        *churn_window_days* old, who have not ordered again since
        ``first order + churn_window_days``.
        """
        days = self._settings.churn_window_days if churn_window_days is None else churn_window_days

        def _compute() -> _Computed:
            now = self._clock()
            if days <= 0:
                return 0.0, False
            orders = self._orders(TimeWindow(start=None, end=now), PAID)
            return churn_rate(orders, now=now, churn_window_days=days), bool(orders)

        return self._guarded("churn_rate", Unit.RATE, 0.0, _compute)

    def cohort_retention(
        self,
        period: str | None = None,
        lookback_days: float | None = None,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> MetricResult:
        """
        First-purchase cohort retention by day, week or month. All history by
        default.
        """
        analyzer = CohortAnalyzer(period or self._settings.cohort_period)

        def _compute(window: TimeWindow) -> _Computed:
            cohorts = analyzer.retention(self._orders(window, PAID))
            return cohorts, bool(cohorts)

        return self._windowed(
            "cohort_retention", Unit.RECORD, [], _compute,
            lookback_days, start, end, lifetime=True,
        )

    def rfm_segments(
        self,
        thresholds: RFMThresholds,
        rules: Sequence[SegmentRule] = (),
        lookback_days: float | None = None,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> MetricResult:
        """
        Recency, frequency and monetary scores per registered customer with
        the first matching segment rule. Recency is measured from the window
        end.
        """
        segmenter = RFMSegmenter(thresholds, rules)

        def _compute(window: TimeWindow) -> _Computed:
            reference = window.end or self._clock()
            scored = segmenter.segment(self._orders(window, PAID), reference)
            return scored, bool(scored)

        return self._windowed("rfm_segments", Unit.RECORD, [], _compute, lookback_days, start, end)

    # ------------------------------------------------------------------
    # Inventory
    # ------------------------------------------------------------------

    def inventory_velocity(
        self,
        lookback_days: float | None = None,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> MetricResult:
        """Units sold per day per product."""

        def _compute(window: TimeWindow) -> _Computed:
            velocity = {p: round(v, 2) for p, v in self._velocity(window).items()}
            return velocity, bool(velocity)

        return self._windowed(
            "inventory_velocity", Unit.QUANTITY, {}, _compute, lookback_days, start, end,
        )

    def days_of_inventory(
        self,
        lookback_days: float | None = None,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> MetricResult:
        """
        Days until stock runs out at the window's sales velocity, for
        stock-managed products that sold at least one unit.
        """

        def _compute(window: TimeWindow) -> _Computed:
            velocity = self._velocity(window)
            days = {
                p.id: round(safe_ratio(max(0, p.stock_quantity), velocity[p.id]), 2)
                for p in self._stocked_products()
                if velocity.get(p.id)
            }
            return days, bool(days)

        return self._windowed(
            "days_of_inventory", Unit.NUMBER, {}, _compute, lookback_days, start, end,
        )

    def sell_through_rate(
        self,
        lookback_days: float | None = None,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> MetricResult:
        """Units sold over units sold plus stock on hand, per stock-managed product."""
        definition = get_metric("units_by_product")

        def _compute(window: TimeWindow) -> _Computed:
            units, has_data = self._catalog_value(definition, window)
            rates = {}
            for product in self._stocked_products():
                sold = units.get(product.id, 0)
                rates[product.id] = percentage(sold, sold + max(0, product.stock_quantity))
            return rates, has_data

        return self._windowed(
            "sell_through_rate", Unit.RATE, {}, _compute, lookback_days, start, end,
        )

    def low_stock_products(self, threshold: int | None = None) -> MetricResult:
        """Ids of stock-managed products at or below *threshold* units."""
        limit = self._settings.low_stock_threshold if threshold is None else threshold

        def _compute() -> _Computed:
            products = self._stocked_products()
            low = sorted(p.id for p in products if p.stock_quantity <= limit)
            return low, bool(products)

        return self._guarded("low_stock_products", Unit.IDENTIFIERS, [], _compute)

    def gross_margin(
        self,
        lookback_days: float | None = None,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> MetricResult:
        """
        (line totals − cost of goods) / line totals, in percent, over paid
        items whose product has a cost.
        """

        def _compute(window: TimeWindow) -> _Computed:
            costed = [
                item
                for item in self._engine.records(
                    Entity.ORDER_ITEMS,
                    window=window,
                    query_filter=self._status_filter(Entity.ORDER_ITEMS, PAID),
                )
                if item.line_cost is not None
            ]
            revenue = sum(item.line_total for item in costed)
            cost = sum(item.line_cost for item in costed)
            return percentage(revenue - cost, revenue), bool(costed)

        return self._windowed("gross_margin", Unit.RATE, 0.0, _compute, lookback_days, start, end)

    def price_elasticity(
        self,
        product_id: str,
        lookback_days: float | None = None,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> MetricResult:
        """
        Elasticity of *product_id* between the preceding window and this one,
        using the average realized unit price and units sold of each.
        """

        def _compute(window: TimeWindow) -> _Computed:
            current_price, current_qty = self._price_and_units(product_id, window)
            previous_price, previous_qty = self._price_and_units(product_id, window.previous())
            value = elasticity(current_price, previous_price, current_qty, previous_qty)
            return round(value, 4), bool(current_qty or previous_qty)

        return self._windowed(
            "price_elasticity", Unit.NUMBER, 0.0, _compute, lookback_days, start, end,
        )

    # ------------------------------------------------------------------
    # Funnel
    # ------------------------------------------------------------------

    def cart_funnel(
        self,
        lookback_days: float | None = None,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> MetricResult:
        """Cart → checkout → completed funnel over attempts created in the window."""
        calculator = FunnelCalculator(self._settings.cart_recovery_hours)

        def _compute(window: TimeWindow) -> _Computed:
            attempts = self._engine.records(Entity.CART_ATTEMPTS, window=window)
            return calculator.build(attempts, now=self._clock()), bool(attempts)

        return self._windowed(
            "cart_funnel", Unit.RECORD, FunnelReport(), _compute, lookback_days, start, end,
        )

    def abandonment_rate(
        self,
        lookback_days: float | None = None,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> MetricResult:
        funnel = self.cart_funnel(lookback_days, start=start, end=end)
        return MetricResult(
            metric="abandonment_rate",
            value=funnel.value.abandonment_rate,
            unit=Unit.RATE,
            status=funnel.status,
            error=funnel.error,
        )

    # ------------------------------------------------------------------
    # Summary
    # ------------------------------------------------------------------

    def kpi_summary(
        self,
        lookback_days: float | None = None,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> MetricResult:
        """
        Revenue, AOV, purchase frequency, LTV, refund rate, discount ratio
        and growth rate for one window.
        """
        formula = EcommerceKPIFormula()

        def _compute(window: TimeWindow) -> _Computed:
            revenue, has_data = self._catalog_value(get_metric("total_revenue"), window)
            inputs = {
                "revenue": revenue,
                "order_count": self._catalog_value(get_metric("order_count"), window)[0],
                "unique_customers": self._catalog_value(get_metric("unique_customers"), window)[0],
                "discount_total": self._catalog_value(get_metric("discount_total"), window)[0],
                "refunded_orders": self._count(Entity.ORDERS, window, ("refunded",)),
                "all_orders": self._count(Entity.ORDERS, window, ("any",)),
                "previous_revenue": self._catalog_value(
                    get_metric("total_revenue"), window.previous()
                )[0],
            }
            return formula.calculate(inputs), has_data or inputs["all_orders"] > 0

        zero = formula.calculate({})
        return self._windowed("kpi_summary", Unit.RECORD, zero, _compute, lookback_days, start, end)

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def _windowed(
        self,
        metric: str,
        unit: str,
        default: Any,
        compute: Callable[[TimeWindow], _Computed],
        lookback_days: float | None,
        start: datetime | None,
        end: datetime | None,
        *,
        lifetime: bool = False,
    ) -> MetricResult:
        def _run() -> _Computed:
            window = self._window(lookback_days, start, end, lifetime=lifetime)
            if window.is_empty:
                return default, False
            return compute(window)

        return self._guarded(metric, unit, default, _run)

    def _guarded(
        self,
        metric: str,
        unit: str,
        default: Any,
        compute: Callable[[], _Computed],
    ) -> MetricResult:
        if not self._guard.is_ready():
            return MetricResult(
                metric=metric,
                value=default,
                unit=unit,
                status=ResultStatus.UNAVAILABLE,
                error=_UNAVAILABLE,
            )

        try:
            value, has_data = compute()
        except EventStoreError as exc:
            if self._settings.raise_on_adapter_failure:
                raise
            logger.exception("Metric computation failed metric=%s", metric)
            return MetricResult(
                metric=metric,
                value=default,
                unit=unit,
                status=ResultStatus.ERROR,
                error=str(exc),
            )

        status = ResultStatus.OK if has_data else ResultStatus.EMPTY
        log_event(logger, logging.DEBUG, "metric_computed", metric=metric, status=status)
        return MetricResult(metric=metric, value=value, unit=unit, status=status)

    def _window(
        self,
        lookback_days: float | None,
        start: datetime | None,
        end: datetime | None,
        *,
        lifetime: bool = False,
    ) -> TimeWindow:
        if lifetime and lookback_days is None and start is None and end is None:
            return TimeWindow.unbounded()
        return resolve_window(
            lookback_days,
            start=start,
            end=end,
            now=self._clock(),
            default_lookback_days=self._settings.default_lookback_days,
        )

    # ------------------------------------------------------------------
    # Query helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _status_filter(entity: Entity, states: Iterable[str] | None) -> QueryFilter:
        return QueryFilter.build(statuses=status_filter(states, entity))

    def _catalog_value(
        self,
        definition: MetricDefinition,
        window: TimeWindow,
        states: Sequence[str] | None = None,
    ) -> _Computed:
        """Run one catalog row; ``has_data`` tells "no records" from "zero"."""
        effective = states if states is not None else definition.states
        query_filter = (
            self._status_filter(definition.entity, effective)
            if effective is not None
            else QueryFilter()
        )
        value = self._engine.aggregate(
            definition.entity,
            definition.aggregate,
            group_by=definition.group_by,
            window=window,
            query_filter=query_filter,
        )
        if definition.group_by is not None:
            return value, bool(value)
        if value:
            return value, True
        count = self._engine.aggregate(
            definition.entity, Aggregate.count(), window=window, query_filter=query_filter,
        )
        return value, count > 0

    def _count(self, entity: Entity, window: TimeWindow, states: Sequence[str]) -> int:
        return int(self._engine.aggregate(
            entity,
            Aggregate.count(),
            window=window,
            query_filter=self._status_filter(entity, states),
        ))

    def _orders(self, window: TimeWindow, states: Sequence[str]) -> list[Any]:
        return self._engine.records(
            Entity.ORDERS,
            window=window,
            query_filter=self._status_filter(Entity.ORDERS, states),
        )

    def _stocked_products(self) -> list[Any]:
        return [p for p in self._engine.records(Entity.PRODUCTS) if p.manages_stock]

    def _velocity(self, window: TimeWindow) -> dict[str, float]:
        days = window.days
        if days <= 0:
            return {}
        units, _ = self._catalog_value(get_metric("units_by_product"), window)
        return {product_id: sold / days for product_id, sold in units.items()}

    def _price_and_units(self, product_id: str, window: TimeWindow) -> tuple[float, float]:
        query_filter = QueryFilter.build(
            statuses=status_filter(PAID, Entity.ORDER_ITEMS),
            product_ids=[product_id],
        )
        revenue = self._engine.aggregate(
            Entity.ORDER_ITEMS, Aggregate.sum("line_total"),
            window=window, query_filter=query_filter,
        )
        units = self._engine.aggregate(
            Entity.ORDER_ITEMS, Aggregate.sum("quantity", unit=Unit.QUANTITY),
            window=window, query_filter=query_filter,
        )
        return safe_ratio(revenue, units), float(units)

    def _daily_series(self, window: TimeWindow) -> tuple[list[tuple[float, float]], bool]:
        """
        Zero-filled ``(day index, revenue)`` pairs across the window.

        Open-ended windows span from the first to the last day with revenue.
        """
        daily, has_data = self._catalog_value(get_metric("daily_revenue"), window)
        if not has_data:
            return [], False

        observed = {date.fromisoformat(day): value for day, value in daily.items()}
        first = window.start.date() if window.start is not None else min(observed)
        last = (
            (window.end - timedelta(microseconds=1)).date()
            if window.end is not None
            else max(observed)
        )

        series: list[tuple[float, float]] = []
        day = first
        while day <= last:
            series.append((float((day - first).days), float(observed.get(day, 0.0))))
            day += timedelta(days=1)
        return series, True
