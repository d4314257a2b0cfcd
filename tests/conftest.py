"""
tests/conftest.py

Shared fixtures: a fixed clock and in-memory commerce snapshots.

Reference instant: 2024-06-15 12:00 UTC. With the default 30-day lookback
the window is [2024-05-16 12:00, 2024-06-15 12:00).

Shop snapshot
-------------
    order   customer  status      created           total  discount  coupons
    o1      c1        completed   2024-06-02 10:00  100    10        SPRING
    o2      c2        completed   2024-06-10 09:00  50     0         -
    o3      (guest)   refunded    2024-06-12 15:00  30     0         -      refunded 30
    o4      c1        processing  2024-06-14 08:00  40     5         SPRING, VIP
    o5      c2        pending     2024-06-13 11:00  20     0         -
    o0      c1        completed   2024-04-01 10:00  80     0         -      (before window)
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from app.availability import AvailabilityGuard
from app.config import MetricsSettings
from app.services.metrics_service import MetricsService
from store.memory_store import InMemoryEventStore
from store.records import (
    CartAttemptRecord,
    CouponRecord,
    CustomerRecord,
    OrderItemRecord,
    OrderRecord,
    ProductRecord,
    RefundRecord,
)

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


def at(year: int, month: int, day: int, hour: int = 0) -> datetime:
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Snapshots
# ---------------------------------------------------------------------------


@pytest.fixture()
def products() -> list[ProductRecord]:
    return [
        ProductRecord(id="p1", price=20.0, cost=12.0, stock_quantity=10, categories=("shirts", "sale")),
        ProductRecord(id="p2", price=50.0, cost=None, stock_quantity=3, categories=("shoes",)),
        ProductRecord(id="p3", price=5.0, cost=2.0, stock_quantity=None),
    ]


@pytest.fixture()
def orders() -> list[OrderRecord]:
    return [
        OrderRecord(
            id="o0", customer_id="c1", status="completed", created_at=at(2024, 4, 1, 10),
            total=80.0, payment_method="card", billing_country="US",
        ),
        OrderRecord(
            id="o1", customer_id="c1", status="completed", created_at=at(2024, 6, 2, 10),
            total=100.0, discount_total=10.0, coupon_codes=("SPRING",),
            payment_method="card", billing_country="US",
        ),
        OrderRecord(
            id="o2", customer_id="c2", status="completed", created_at=at(2024, 6, 10, 9),
            total=50.0, payment_method="paypal", billing_country="DE",
        ),
        OrderRecord(
            id="o3", customer_id=None, status="refunded", created_at=at(2024, 6, 12, 15),
            total=30.0, refunded_total=30.0, payment_method="card", billing_country="US",
        ),
        OrderRecord(
            id="o4", customer_id="c1", status="processing", created_at=at(2024, 6, 14, 8),
            total=40.0, discount_total=5.0, coupon_codes=("SPRING", "VIP"),
            payment_method="card", billing_country="US",
        ),
        OrderRecord(
            id="o5", customer_id="c2", status="pending", created_at=at(2024, 6, 13, 11),
            total=20.0, payment_method="paypal", billing_country="DE",
        ),
    ]


@pytest.fixture()
def items() -> list[OrderItemRecord]:
    return [
        OrderItemRecord(order_id="o0", product_id="p2", quantity=1, line_total=50.0, unit_price=50.0),
        OrderItemRecord(order_id="o1", product_id="p1", quantity=3, line_total=60.0, unit_price=20.0),
        OrderItemRecord(order_id="o1", product_id="p2", quantity=1, line_total=50.0, unit_price=50.0),
        OrderItemRecord(order_id="o2", product_id="p2", quantity=1, line_total=50.0, unit_price=50.0),
        OrderItemRecord(order_id="o3", product_id="p3", quantity=6, line_total=30.0, unit_price=5.0),
        OrderItemRecord(order_id="o4", product_id="p1", quantity=2, line_total=40.0, unit_price=20.0),
        OrderItemRecord(order_id="o4", product_id="p3", quantity=1, line_total=5.0, unit_price=5.0),
        OrderItemRecord(order_id="o5", product_id="p3", quantity=4, line_total=20.0, unit_price=5.0),
    ]


@pytest.fixture()
def refunds() -> list[RefundRecord]:
    return [RefundRecord(id=1, order_id="o3", amount=30.0, reason="damaged", created_at=at(2024, 6, 13))]


@pytest.fixture()
def coupons() -> list[CouponRecord]:
    return [
        CouponRecord(code="SPRING", discount_type="percentage", amount=10.0, usage_count=2,
                     expires_at=at(2024, 12, 31)),
        CouponRecord(code="VIP", discount_type="fixed_cart", amount=5.0, usage_count=1,
                     expires_at=at(2024, 6, 1)),
        CouponRecord(code="OLD", discount_type="fixed_cart", amount=3.0, usage_count=7),
    ]


@pytest.fixture()
def customers() -> list[CustomerRecord]:
    return [
        CustomerRecord(id="c1", registered_at=at(2024, 1, 1), country="US"),
        CustomerRecord(id="c2", registered_at=at(2024, 6, 1), country="DE"),
    ]


@pytest.fixture()
def cart_attempts() -> list[CartAttemptRecord]:
    """Five attempts: three reached checkout, two completed."""
    created = NOW - timedelta(days=5)
    return [
        CartAttemptRecord(
            id="a1", created_at=created, last_modified_at=created + timedelta(hours=1),
            checkout_started_at=created + timedelta(minutes=30), state="converted", order_id="o1",
        ),
        CartAttemptRecord(
            id="a2", created_at=created, last_modified_at=created + timedelta(hours=1),
            state="converted", order_id="o2",
        ),
        CartAttemptRecord(
            id="a3", created_at=created, last_modified_at=created + timedelta(hours=1),
            checkout_started_at=created + timedelta(minutes=20), state="failed",
        ),
        CartAttemptRecord(
            id="a4", created_at=created, last_modified_at=NOW - timedelta(hours=72),
        ),
        CartAttemptRecord(
            id="a5", created_at=created, last_modified_at=NOW - timedelta(hours=1),
        ),
    ]


@pytest.fixture()
def shop_store(
    orders, items, refunds, coupons, products, customers, cart_attempts,
) -> InMemoryEventStore:
    return InMemoryEventStore(
        orders=orders,
        items=items,
        refunds=refunds,
        coupons=coupons,
        products=products,
        customers=customers,
        cart_attempts=cart_attempts,
    )


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


@pytest.fixture()
def settings() -> MetricsSettings:
    return MetricsSettings()


@pytest.fixture()
def make_service(settings: MetricsSettings):
    """Factory building a MetricsService over any store with the fixed clock."""

    def _make(store, ready: bool = True, **overrides) -> MetricsService:
        return MetricsService(
            store,
            AvailabilityGuard.always(ready),
            settings=replace(settings, **overrides),
            clock=lambda: NOW,
        )

    return _make


@pytest.fixture()
def svc(shop_store, make_service) -> MetricsService:
    return make_service(shop_store)


@pytest.fixture()
def now() -> datetime:
    return NOW
