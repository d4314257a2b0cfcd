"""
tests/test_aggregation_engine.py

Pytest unit tests for AggregationEngine and the shared reducers.

Coverage
--------
- Zero values for empty scopes (empty window, empty status set, no rows)
- Scalar and grouped reductions, ordering of groups
- Multi-valued grouping keys and None-key exclusion
- Currency rounding and integer counts
- Associativity under partitioning of the window
- Determinism across repeated calls
- Definition-time validation of field names
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from app.services.aggregation_service import AggregationEngine
from app.services.metrics_catalog import METRIC_CATALOG, MetricDefinition
from app.windowing import resolve_window, status_filter
from store.aggregates import Aggregate, reduce_records
from store.memory_store import InMemoryEventStore
from store.query import Entity, QueryFilter, TimeWindow
from store.records import OrderRecord


@pytest.fixture()
def engine(shop_store: InMemoryEventStore) -> AggregationEngine:
    return AggregationEngine(shop_store)


@pytest.fixture()
def paid() -> QueryFilter:
    return QueryFilter.build(statuses=status_filter(["paid"]))


@pytest.fixture()
def month(now) -> TimeWindow:
    return resolve_window(30, now=now)


# ---------------------------------------------------------------------------
# Empty inputs
# ---------------------------------------------------------------------------


class TestEmptyScopes:
    @pytest.mark.parametrize(
        ("aggregate", "expected"),
        [
            (Aggregate.sum("total"), 0.0),
            (Aggregate.count(), 0),
            (Aggregate.count_distinct("customer_id"), 0),
            (Aggregate.average("total"), 0.0),
        ],
    )
    def test_empty_window_returns_zero(self, engine, aggregate, expected) -> None:
        value = engine.aggregate(Entity.ORDERS, aggregate, window=TimeWindow.empty())
        assert value == expected

    def test_empty_status_set_returns_zero(self, engine, month) -> None:
        value = engine.aggregate(
            Entity.ORDERS,
            Aggregate.sum("total"),
            window=month,
            query_filter=QueryFilter.build(statuses=status_filter(["teleported"])),
        )
        assert value == 0.0

    def test_empty_grouped_returns_empty_map(self, engine) -> None:
        value = engine.aggregate(
            Entity.ORDERS, Aggregate.sum("total"), group_by="customer_id", window=TimeWindow.empty(),
        )
        assert value == {}

    def test_average_over_no_rows_is_zero(self) -> None:
        engine = AggregationEngine(InMemoryEventStore())
        assert engine.aggregate(Entity.ORDERS, Aggregate.average("total")) == 0.0

    def test_empty_scope_never_touches_the_store(self) -> None:
        class _Exploding(InMemoryEventStore):
            def aggregate(self, *args, **kwargs):
                raise AssertionError("store queried")

        engine = AggregationEngine(_Exploding())
        assert engine.aggregate(Entity.ORDERS, Aggregate.count(), window=TimeWindow.empty()) == 0
        assert engine.records(Entity.ORDERS, window=TimeWindow.empty()) == []


# ---------------------------------------------------------------------------
# Reductions
# ---------------------------------------------------------------------------


class TestReductions:
    def test_paid_revenue(self, engine, month, paid) -> None:
        assert engine.aggregate(
            Entity.ORDERS, Aggregate.sum("total"), window=month, query_filter=paid,
        ) == 190.0

    def test_average_is_rounded_currency(self, engine, month, paid) -> None:
        assert engine.aggregate(
            Entity.ORDERS, Aggregate.average("total"), window=month, query_filter=paid,
        ) == 63.33

    def test_count_is_int(self, engine, month) -> None:
        value = engine.aggregate(Entity.ORDERS, Aggregate.count(), window=month)
        assert value == 5
        assert isinstance(value, int)

    def test_count_distinct_ignores_guests(self, engine, month) -> None:
        assert engine.aggregate(
            Entity.ORDERS, Aggregate.count_distinct("customer_id"), window=month,
        ) == 2

    def test_grouped_by_status_is_ordered(self, engine, month) -> None:
        value = engine.aggregate(Entity.ORDERS, Aggregate.count(), group_by="status", window=month)
        assert value == {"completed": 2, "pending": 1, "processing": 1, "refunded": 1}
        assert list(value) == sorted(value)

    def test_multi_valued_key_fans_out(self, engine, month, paid) -> None:
        value = engine.aggregate(
            Entity.ORDERS, Aggregate.sum("discount_total"),
            group_by="coupon_codes", window=month, query_filter=paid,
        )
        assert value == {"SPRING": 15.0, "VIP": 5.0}

    def test_none_keys_are_excluded(self, engine, month) -> None:
        value = engine.aggregate(
            Entity.ORDERS, Aggregate.sum("total"), group_by="customer_id", window=month,
        )
        assert None not in value
        assert set(value) == {"c1", "c2"}

    def test_item_quantities_stay_integers(self, engine, month, paid) -> None:
        value = engine.aggregate(
            Entity.ORDER_ITEMS,
            Aggregate.sum("quantity", unit="quantity"),
            group_by="product_id",
            window=month,
            query_filter=paid,
        )
        assert value == {"p1": 5, "p2": 2, "p3": 1}
        assert all(isinstance(v, int) for v in value.values())

    def test_items_grouped_by_category(self, engine, month, paid) -> None:
        value = engine.aggregate(
            Entity.ORDER_ITEMS, Aggregate.sum("line_total"),
            group_by="categories", window=month, query_filter=paid,
        )
        assert value == {"sale": 100.0, "shirts": 100.0, "shoes": 100.0}

    def test_unknown_field_raises(self, engine) -> None:
        with pytest.raises(ValueError, match="Unknown field"):
            engine.aggregate(Entity.ORDERS, Aggregate.sum("colour"))


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------


class TestProperties:
    @pytest.mark.parametrize("split_days", [1, 7, 13, 29])
    def test_sum_is_associative_under_partitioning(self, engine, month, paid, now, split_days) -> None:
        left, right = month.split(now - timedelta(days=split_days))
        whole = engine.aggregate(Entity.ORDERS, Aggregate.sum("total"), window=month, query_filter=paid)
        parts = [
            engine.aggregate(Entity.ORDERS, Aggregate.sum("total"), window=w, query_filter=paid)
            for w in (left, right)
        ]
        assert sum(parts) == pytest.approx(whole)

    def test_counts_are_associative_on_boundary_order(self, now) -> None:
        boundary = now - timedelta(days=3)
        store = InMemoryEventStore(orders=[
            OrderRecord(id="a", status="completed", created_at=boundary, total=10.0),
            OrderRecord(id="b", status="completed", created_at=boundary - timedelta(seconds=1), total=5.0),
        ])
        engine = AggregationEngine(store)
        window = resolve_window(7, now=now)
        left, right = window.split(boundary)
        assert engine.aggregate(Entity.ORDERS, Aggregate.count(), window=left) == 1
        assert engine.aggregate(Entity.ORDERS, Aggregate.count(), window=right) == 1

    def test_deterministic(self, engine, month) -> None:
        first = engine.aggregate(Entity.ORDERS, Aggregate.sum("total"), group_by="billing_country", window=month)
        second = engine.aggregate(Entity.ORDERS, Aggregate.sum("total"), group_by="billing_country", window=month)
        assert first == second
        assert list(first) == list(second)


# ---------------------------------------------------------------------------
# Reducers and catalog
# ---------------------------------------------------------------------------


class TestReducersAndCatalog:
    def test_reduce_records_average_skips_none(self) -> None:
        class Row:
            def __init__(self, value):
                self.value = value

        assert reduce_records([Row(2.0), Row(None), Row(4.0)], Aggregate.average("value")) == 3.0

    def test_aggregate_requires_field(self) -> None:
        with pytest.raises(ValueError):
            Aggregate(Aggregate.sum("x").kind, None)

    def test_catalog_rows_are_validated(self) -> None:
        with pytest.raises(ValueError, match="Unknown field"):
            MetricDefinition("bad", Entity.ORDERS, Aggregate.sum("colour"))

    def test_status_on_statusless_entity_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            MetricDefinition("bad", Entity.REFUNDS, Aggregate.count(), states=("paid",))

    def test_catalog_names_match_keys(self) -> None:
        assert all(name == row.name for name, row in METRIC_CATALOG.items())
        assert "total_revenue" in METRIC_CATALOG
