"""
app/services/metrics_catalog.py

Named metrics expressed as configuration rows.

Each :class:`MetricDefinition` names an entity, a reducer, an optional
grouping key and the logical states that count. ``MetricsService.compute``
turns a row into one :class:`AggregationEngine` call, so adding a metric is
adding a row.

Field and grouping names are checked against the entity schema when the
row is built; a typo fails at import time, not on a dashboard.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from store.aggregates import Aggregate, Unit
from store.query import ENTITY_SCHEMAS, Entity

# Logical state sets shared by several rows.
PAID: Final[tuple[str, ...]] = ("paid",)
COMPLETED: Final[tuple[str, ...]] = ("completed",)
ANY: Final[tuple[str, ...]] = ("any",)


@dataclass(frozen=True)
class MetricDefinition:
    """
    One named metric.

    ``states`` is passed through ``status_filter``; ``None`` disables the
    status predicate (entities without a status field).
    """

    name: str
    entity: Entity
    aggregate: Aggregate
    group_by: str | None = None
    states: tuple[str, ...] | None = PAID
    description: str = ""

    def __post_init__(self) -> None:
        schema = ENTITY_SCHEMAS[self.entity]
        if self.aggregate.field is not None:
            schema.require_field(self.aggregate.field)
        if self.group_by is not None:
            schema.require_field(self.group_by)
        if self.states is not None and schema.status_field is None:
            raise ValueError(f"Metric {self.name!r}: {self.entity.value!r} has no status field.")

    @property
    def unit(self) -> str:
        return self.aggregate.unit

    @property
    def zero(self) -> float | int | dict:
        return {} if self.group_by is not None else self.aggregate.zero


_ROWS: tuple[MetricDefinition, ...] = (
    # -- Orders: totals --------------------------------------------------
    MetricDefinition(
        "total_revenue", Entity.ORDERS, Aggregate.sum("total"),
        description="Sum of order totals of paid orders.",
    ),
    MetricDefinition(
        "completed_revenue", Entity.ORDERS, Aggregate.sum("total"), states=COMPLETED,
        description="Sum of order totals of fulfilled orders only.",
    ),
    MetricDefinition(
        "net_revenue", Entity.ORDERS, Aggregate.sum("net_total"),
        states=("paid", "refunded"),
        description="Order totals minus refunded amounts.",
    ),
    MetricDefinition(
        "order_count", Entity.ORDERS, Aggregate.count(),
        description="Number of paid orders.",
    ),
    MetricDefinition(
        "orders_by_status", Entity.ORDERS, Aggregate.count(), group_by="status",
        states=ANY,
        description="Order count per concrete status.",
    ),
    MetricDefinition(
        "average_order_value", Entity.ORDERS, Aggregate.average("total"),
        description="Mean order total of paid orders.",
    ),
    MetricDefinition("tax_total", Entity.ORDERS, Aggregate.sum("tax_total")),
    MetricDefinition("shipping_total", Entity.ORDERS, Aggregate.sum("shipping_total")),
    MetricDefinition("discount_total", Entity.ORDERS, Aggregate.sum("discount_total")),
    MetricDefinition(
        "refunded_total", Entity.REFUNDS, Aggregate.sum("amount"), states=None,
        description="Sum of refund amounts issued in the window.",
    ),
    MetricDefinition("refund_count", Entity.REFUNDS, Aggregate.count(), states=None),
    MetricDefinition(
        "unique_customers", Entity.ORDERS, Aggregate.count_distinct("customer_id"),
        description="Distinct registered customers with a paid order.",
    ),
    # -- Order items ------------------------------------------------------
    MetricDefinition(
        "revenue_by_product", Entity.ORDER_ITEMS, Aggregate.sum("line_total"),
        group_by="product_id",
    ),
    MetricDefinition(
        "units_by_product", Entity.ORDER_ITEMS,
        Aggregate.sum("quantity", unit=Unit.QUANTITY), group_by="product_id",
    ),
    MetricDefinition(
        "revenue_by_category", Entity.ORDER_ITEMS, Aggregate.sum("line_total"),
        group_by="categories",
        description="Line totals per category; multi-category items count in each.",
    ),
    MetricDefinition(
        "units_by_category", Entity.ORDER_ITEMS,
        Aggregate.sum("quantity", unit=Unit.QUANTITY), group_by="categories",
    ),
    # -- Orders: breakdowns ------------------------------------------------
    MetricDefinition(
        "revenue_by_customer", Entity.ORDERS, Aggregate.sum("total"), group_by="customer_id",
    ),
    MetricDefinition(
        "orders_by_customer", Entity.ORDERS, Aggregate.count(), group_by="customer_id",
    ),
    MetricDefinition(
        "revenue_by_country", Entity.ORDERS, Aggregate.sum("total"), group_by="billing_country",
    ),
    MetricDefinition(
        "revenue_by_payment_method", Entity.ORDERS, Aggregate.sum("total"),
        group_by="payment_method",
    ),
    MetricDefinition(
        "orders_by_coupon", Entity.ORDERS, Aggregate.count(), group_by="coupon_codes",
    ),
    MetricDefinition(
        "revenue_by_coupon", Entity.ORDERS, Aggregate.sum("total"), group_by="coupon_codes",
        description="Order totals per applied code; multi-coupon orders count in each.",
    ),
    MetricDefinition(
        "discount_by_coupon", Entity.ORDERS, Aggregate.sum("discount_total"),
        group_by="coupon_codes",
        description="Order discount per applied code; multi-coupon orders count in each.",
    ),
    MetricDefinition(
        "daily_revenue", Entity.ORDERS, Aggregate.sum("total"), group_by="order_date",
    ),
    MetricDefinition(
        "daily_order_count", Entity.ORDERS, Aggregate.count(), group_by="order_date",
    ),
    MetricDefinition(
        "orders_by_customer_kind", Entity.ORDERS, Aggregate.count(), group_by="customer_kind",
    ),
    # -- Refunds / carts ----------------------------------------------------
    MetricDefinition(
        "refunds_by_reason", Entity.REFUNDS, Aggregate.sum("amount"), group_by="reason",
        states=None,
    ),
    MetricDefinition(
        "cart_attempts_by_state", Entity.CART_ATTEMPTS, Aggregate.count(), group_by="state",
        states=None,
        description="Recorded terminal states; open attempts have no state and are not counted.",
    ),
)

METRIC_CATALOG: Final[dict[str, MetricDefinition]] = {row.name: row for row in _ROWS}


def get_metric(name: str) -> MetricDefinition:
    try:
        return METRIC_CATALOG[name]
    except KeyError:
        raise ValueError(
            f"Unknown metric {name!r}. Allowed: {sorted(METRIC_CATALOG)}."
        ) from None
