"""
In-memory event store used for fixtures, tests and offline snapshots.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import replace
from typing import Any

from store.base import EventStore
from store.query import ENTITY_SCHEMAS, Entity, QueryFilter, TimeWindow
from store.records import (
    CartAttemptRecord,
    CouponRecord,
    CustomerRecord,
    OrderItemRecord,
    OrderRecord,
    ProductRecord,
    RefundRecord,
)

logger = logging.getLogger(__name__)


class InMemoryEventStore(EventStore):
    """
    Serves immutable record snapshots from Python lists.

    Order items are denormalized once at construction: each item receives
    its parent order's timestamp, status and customer, and the product's
    categories and cost, matching what :class:`SQLAlchemyEventStore` joins.
    Items whose order is unknown are kept but never match a time window.
    """

    def __init__(
        self,
        *,
        orders: Sequence[OrderRecord] = (),
        items: Sequence[OrderItemRecord] = (),
        refunds: Sequence[RefundRecord] = (),
        coupons: Sequence[CouponRecord] = (),
        products: Sequence[ProductRecord] = (),
        customers: Sequence[CustomerRecord] = (),
        cart_attempts: Sequence[CartAttemptRecord] = (),
        available: bool = True,
    ) -> None:
        self._available = available
        self._records: dict[Entity, tuple[Any, ...]] = {
            Entity.ORDERS: tuple(orders),
            Entity.ORDER_ITEMS: tuple(_denormalize_items(items, orders, products)),
            Entity.REFUNDS: tuple(refunds),
            Entity.COUPONS: tuple(coupons),
            Entity.PRODUCTS: tuple(products),
            Entity.CUSTOMERS: tuple(customers),
            Entity.CART_ATTEMPTS: tuple(cart_attempts),
        }

    def find(
        self,
        entity: Entity,
        query_filter: QueryFilter | None = None,
        window: TimeWindow | None = None,
    ) -> list[Any]:
        query_filter = query_filter or QueryFilter()
        window = window or TimeWindow.unbounded()
        query_filter.validate(entity)

        if window.is_empty or query_filter.matches_nothing:
            return []

        time_field = ENTITY_SCHEMAS[entity].time_field
        rows = [
            record
            for record in self._records[entity]
            if (time_field is None or window.contains(getattr(record, time_field)))
            and query_filter.matches(entity, record)
        ]
        logger.debug("find %s → %d rows", entity.value, len(rows))
        return rows

    def probe(self) -> bool:
        return self._available


def _denormalize_items(
    items: Sequence[OrderItemRecord],
    orders: Sequence[OrderRecord],
    products: Sequence[ProductRecord],
) -> list[OrderItemRecord]:
    orders_by_id = {o.id: o for o in orders}
    products_by_id = {p.id: p for p in products}

    joined: list[OrderItemRecord] = []
    for item in items:
        order = orders_by_id.get(item.order_id)
        product = products_by_id.get(item.product_id)
        joined.append(
            replace(
                item,
                order_created_at=order.created_at if order else item.order_created_at,
                order_status=order.status if order else item.order_status,
                customer_id=order.customer_id if order else item.customer_id,
                categories=product.categories if product else item.categories,
                unit_cost=product.cost if product else item.unit_cost,
            )
        )
    return joined
