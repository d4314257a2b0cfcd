"""
store/query.py

Query scope primitives shared by every event-store backend.

A query is fully described by three values:

* :class:`Entity`      – which event stream to read.
* :class:`TimeWindow`  – half-open ``[start, end)`` interval on the entity's
  time field, so adjacent windows partition their union exactly.
* :class:`QueryFilter` – status / identifier / equality predicates.

Field names are validated against :data:`ENTITY_SCHEMAS`; backends translate
them into parameterized predicates, never into interpolated query text.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Any

from store.records import (
    CartAttemptRecord,
    CouponRecord,
    CustomerRecord,
    OrderItemRecord,
    OrderRecord,
    ProductRecord,
    RefundRecord,
    as_utc,
)


class Entity(str, enum.Enum):
    ORDERS = "orders"
    ORDER_ITEMS = "order_items"
    REFUNDS = "refunds"
    COUPONS = "coupons"
    PRODUCTS = "products"
    CUSTOMERS = "customers"
    CART_ATTEMPTS = "cart_attempts"


@dataclass(frozen=True)
class EntitySchema:
    """Queryable vocabulary of one entity."""

    record_type: type
    id_field: str
    time_field: str | None
    status_field: str | None
    fields: frozenset[str]
    multi_valued: frozenset[str] = frozenset()

    def require_field(self, name: str) -> None:
        if name not in self.fields:
            raise ValueError(
                f"Unknown field {name!r}. Allowed: {sorted(self.fields)}."
            )


ENTITY_SCHEMAS: dict[Entity, EntitySchema] = {
    Entity.ORDERS: EntitySchema(
        record_type=OrderRecord,
        id_field="id",
        time_field="created_at",
        status_field="status",
        fields=frozenset({
            "id", "customer_id", "status", "created_at", "paid_at", "currency",
            "total", "tax_total", "shipping_total", "discount_total",
            "refunded_total", "net_total", "payment_method", "billing_country",
            "coupon_codes", "order_date", "customer_kind",
        }),
        multi_valued=frozenset({"coupon_codes"}),
    ),
    Entity.ORDER_ITEMS: EntitySchema(
        record_type=OrderItemRecord,
        id_field="order_id",
        time_field="order_created_at",
        status_field="order_status",
        fields=frozenset({
            "order_id", "product_id", "quantity", "line_total", "unit_price",
            "order_created_at", "order_status", "customer_id", "categories",
            "unit_cost", "line_cost", "order_date",
        }),
        multi_valued=frozenset({"categories"}),
    ),
    Entity.REFUNDS: EntitySchema(
        record_type=RefundRecord,
        id_field="order_id",
        time_field="created_at",
        status_field=None,
        fields=frozenset({"id", "order_id", "amount", "reason", "created_at"}),
    ),
    Entity.COUPONS: EntitySchema(
        record_type=CouponRecord,
        id_field="code",
        time_field=None,
        status_field=None,
        fields=frozenset({
            "code", "discount_type", "amount", "usage_count", "expires_at",
            "product_ids", "category_ids",
        }),
        multi_valued=frozenset({"product_ids", "category_ids"}),
    ),
    Entity.PRODUCTS: EntitySchema(
        record_type=ProductRecord,
        id_field="id",
        time_field=None,
        status_field=None,
        fields=frozenset({
            "id", "name", "sku", "product_type", "parent_id", "price", "cost",
            "stock_quantity", "categories", "tags", "review_count",
            "average_rating",
        }),
        multi_valued=frozenset({"categories", "tags"}),
    ),
    Entity.CUSTOMERS: EntitySchema(
        record_type=CustomerRecord,
        id_field="id",
        time_field="registered_at",
        status_field=None,
        fields=frozenset({"id", "registered_at", "country"}),
    ),
    Entity.CART_ATTEMPTS: EntitySchema(
        record_type=CartAttemptRecord,
        id_field="id",
        time_field="created_at",
        status_field="state",
        fields=frozenset({
            "id", "customer_id", "created_at", "last_modified_at",
            "checkout_started_at", "state", "order_id", "item_count",
            "cart_total", "applied_coupons",
        }),
        multi_valued=frozenset({"applied_coupons"}),
    ),
}


# ---------------------------------------------------------------------------
# Time window
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TimeWindow:
    """
    Half-open interval ``[start, end)``. ``None`` bounds are open-ended.

    An *empty* window matches nothing; it is how invalid ranges (negative
    lookback, ``start > end``) are represented instead of raising.
    """

    start: datetime | None = None
    end: datetime | None = None
    is_empty: bool = False

    @classmethod
    def unbounded(cls) -> TimeWindow:
        return cls()

    @classmethod
    def empty(cls) -> TimeWindow:
        return cls(is_empty=True)

    @classmethod
    def between(cls, start: datetime | None, end: datetime | None) -> TimeWindow:
        start = as_utc(start) if start is not None else None
        end = as_utc(end) if end is not None else None
        if start is not None and end is not None and start > end:
            return cls.empty()
        return cls(start=start, end=end)

    @property
    def is_bounded(self) -> bool:
        return self.start is not None and self.end is not None

    @property
    def days(self) -> float:
        """Window length in days; ``0.0`` for empty or open-ended windows."""
        if self.is_empty or not self.is_bounded:
            return 0.0
        return (self.end - self.start).total_seconds() / 86400.0  # type: ignore[operator]

    def contains(self, moment: datetime | None) -> bool:
        if self.is_empty or moment is None:
            return False
        moment = as_utc(moment)
        if self.start is not None and moment < self.start:
            return False
        if self.end is not None and moment >= self.end:
            return False
        return True

    def previous(self) -> TimeWindow:
        """Adjacent window of equal length ending where this one starts."""
        if self.is_empty or not self.is_bounded:
            return TimeWindow.empty()
        length: timedelta = self.end - self.start  # type: ignore[operator]
        return TimeWindow(start=self.start - length, end=self.start)  # type: ignore[operator]

    def split(self, at: datetime) -> tuple[TimeWindow, TimeWindow]:
        """Partition into ``[start, at)`` and ``[at, end)``."""
        if self.is_empty:
            return TimeWindow.empty(), TimeWindow.empty()
        at = as_utc(at)
        if self.start is not None and at < self.start:
            at = self.start
        if self.end is not None and at > self.end:
            at = self.end
        return replace(self, end=at), replace(self, start=at)


# ---------------------------------------------------------------------------
# Filter
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class QueryFilter:
    """
    Predicates applied on top of the time window.

    ``None`` means "do not filter on this attribute"; an empty set means
    "match nothing" (e.g. a status request that resolved to no statuses).
    ``equals`` holds ``(field, value)`` pairs compared for equality.
    """

    statuses: frozenset[str] | None = None
    ids: frozenset[str] | None = None
    customer_ids: frozenset[str] | None = None
    product_ids: frozenset[str] | None = None
    equals: tuple[tuple[str, Any], ...] = ()

    @classmethod
    def build(
        cls,
        *,
        statuses: Iterable[str] | None = None,
        ids: Iterable[str] | None = None,
        customer_ids: Iterable[str] | None = None,
        product_ids: Iterable[str] | None = None,
        equals: Mapping[str, Any] | None = None,
    ) -> QueryFilter:
        return cls(
            statuses=_freeze(statuses),
            ids=_freeze(ids),
            customer_ids=_freeze(customer_ids),
            product_ids=_freeze(product_ids),
            equals=tuple(sorted((equals or {}).items())),
        )

    @property
    def matches_nothing(self) -> bool:
        return any(
            s is not None and len(s) == 0
            for s in (self.statuses, self.ids, self.customer_ids, self.product_ids)
        )

    def validate(self, entity: Entity) -> None:
        """Raise ValueError when a predicate names a field *entity* lacks."""
        schema = ENTITY_SCHEMAS[entity]
        if self.statuses is not None and schema.status_field is None:
            raise ValueError(f"Entity {entity.value!r} has no status field.")
        if self.customer_ids is not None:
            schema.require_field("customer_id")
        if self.product_ids is not None:
            schema.require_field("product_id")
        for name, _value in self.equals:
            schema.require_field(name)

    def matches(self, entity: Entity, record: Any) -> bool:
        """Evaluate the filter against one in-memory record."""
        schema = ENTITY_SCHEMAS[entity]
        if self.statuses is not None:
            if getattr(record, schema.status_field) not in self.statuses:  # type: ignore[arg-type]
                return False
        if self.ids is not None and getattr(record, schema.id_field) not in self.ids:
            return False
        if self.customer_ids is not None and record.customer_id not in self.customer_ids:
            return False
        if self.product_ids is not None and record.product_id not in self.product_ids:
            return False
        for name, value in self.equals:
            if getattr(record, name) != value:
                return False
        return True


def _freeze(values: Iterable[str] | None) -> frozenset[str] | None:
    if values is None:
        return None
    return frozenset(values)
