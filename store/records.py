"""
store/records.py

Read-only snapshots of commerce events as handed to the metrics engine.

Records are frozen dataclasses so that metric code never depends on a
particular storage backend. Item records are denormalized: they carry the
parent order's timestamp, status and customer plus the product's categories,
which lets item metrics be windowed, filtered and grouped without a join in
the engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _utc_date(value: datetime) -> date:
    return as_utc(value).date()


@dataclass(frozen=True)
class OrderRecord:
    id: str
    status: str
    created_at: datetime
    total: float = 0.0
    customer_id: str | None = None
    paid_at: datetime | None = None
    currency: str = "USD"
    tax_total: float = 0.0
    shipping_total: float = 0.0
    discount_total: float = 0.0
    refunded_total: float = 0.0
    payment_method: str | None = None
    billing_country: str | None = None
    coupon_codes: tuple[str, ...] = ()

    @property
    def net_total(self) -> float:
        return self.total - self.refunded_total

    @property
    def order_date(self) -> str:
        return _utc_date(self.created_at).isoformat()

    @property
    def customer_kind(self) -> str:
        return "guest" if self.customer_id is None else "registered"


@dataclass(frozen=True)
class OrderItemRecord:
    order_id: str
    product_id: str
    quantity: int = 0
    line_total: float = 0.0
    unit_price: float = 0.0
    # Joined from the parent order / product by the store.
    order_created_at: datetime | None = None
    order_status: str | None = None
    customer_id: str | None = None
    categories: tuple[str, ...] = ()
    unit_cost: float | None = None

    @property
    def order_date(self) -> str | None:
        if self.order_created_at is None:
            return None
        return _utc_date(self.order_created_at).isoformat()

    @property
    def line_cost(self) -> float | None:
        if self.unit_cost is None:
            return None
        return self.unit_cost * self.quantity


@dataclass(frozen=True)
class RefundRecord:
    order_id: str
    amount: float
    created_at: datetime
    reason: str | None = None
    id: int | None = None


@dataclass(frozen=True)
class CouponRecord:
    code: str
    discount_type: str
    amount: float = 0.0
    usage_count: int = 0
    expires_at: datetime | None = None
    product_ids: tuple[str, ...] = ()
    category_ids: tuple[str, ...] = ()

    def is_expired(self, at: datetime) -> bool:
        return self.expires_at is not None and as_utc(self.expires_at) <= as_utc(at)


@dataclass(frozen=True)
class ProductRecord:
    id: str
    price: float = 0.0
    name: str = ""
    sku: str | None = None
    product_type: str = "simple"
    parent_id: str | None = None
    cost: float | None = None
    stock_quantity: int | None = None
    categories: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    review_count: int = 0
    average_rating: float = 0.0

    @property
    def manages_stock(self) -> bool:
        return self.stock_quantity is not None


@dataclass(frozen=True)
class CustomerRecord:
    id: str
    registered_at: datetime
    country: str | None = None


@dataclass(frozen=True)
class CartAttemptRecord:
    id: str
    created_at: datetime
    last_modified_at: datetime
    customer_id: str | None = None
    checkout_started_at: datetime | None = None
    state: str | None = None
    order_id: str | None = None
    item_count: int = 0
    cart_total: float = 0.0
    line_items: tuple[dict[str, Any], ...] = field(default=())
    applied_coupons: tuple[str, ...] = ()
