"""
store/sqlalchemy_store.py

SQLAlchemy-backed event store over the commerce platform's tables.

Query design
------------
Every statement is built with ``select()`` and bound parameters; no field
name or value is ever interpolated into SQL text. Field names are resolved
through a fixed column map per entity, so an unknown name fails before any
query is issued.

``aggregate`` is pushed down to the database when the aggregated field, the
grouping key and every equality predicate map to plain columns::

    SELECT products.id, COALESCE(SUM(order_items.line_total), 0)
    FROM   order_items
    JOIN   orders ON order_items.order_id = orders.id
    WHERE  orders.status IN (:s1) AND orders.created_at >= :start
      AND  orders.created_at < :end
    GROUP BY order_items.product_id

Multi-valued keys (categories, coupon codes) and derived attributes
(``order_date``, ``customer_kind``) fall back to :meth:`find` plus the shared
Python reducers, which yields identical results.

Each call opens its own session from the factory and closes it, which gives
a point-in-time read per call.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from decimal import Decimal
from typing import Any

from sqlalchemy import Select, distinct, func, inspect as sa_inspect, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.logging_utils import log_event
from db.models import CartAttempt, Coupon, Customer, Order, OrderItem, Product, Refund
from store.aggregates import (
    Aggregate,
    AggregateKind,
    GroupedResult,
    reduce_records,
)
from store.base import EventStore
from store.errors import EventStoreQueryError
from store.query import ENTITY_SCHEMAS, Entity, QueryFilter, TimeWindow, as_utc
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

REQUIRED_TABLES: frozenset[str] = frozenset(
    {
        Order.__tablename__,
        OrderItem.__tablename__,
        Refund.__tablename__,
        Coupon.__tablename__,
        Product.__tablename__,
        Customer.__tablename__,
        CartAttempt.__tablename__,
    }
)

# ---------------------------------------------------------------------------
# Column maps: field name → SQL expression (plain columns only)
# ---------------------------------------------------------------------------

_COLUMNS: dict[Entity, dict[str, Any]] = {
    Entity.ORDERS: {
        "id": Order.id,
        "customer_id": Order.customer_id,
        "status": Order.status,
        "created_at": Order.created_at,
        "paid_at": Order.paid_at,
        "currency": Order.currency,
        "total": Order.total,
        "tax_total": Order.tax_total,
        "shipping_total": Order.shipping_total,
        "discount_total": Order.discount_total,
        "refunded_total": Order.refunded_total,
        "net_total": Order.total - Order.refunded_total,
        "payment_method": Order.payment_method,
        "billing_country": Order.billing_country,
    },
    Entity.ORDER_ITEMS: {
        "order_id": OrderItem.order_id,
        "product_id": OrderItem.product_id,
        "quantity": OrderItem.quantity,
        "line_total": OrderItem.line_total,
        "unit_price": OrderItem.unit_price,
        "order_created_at": Order.created_at,
        "order_status": Order.status,
        "customer_id": Order.customer_id,
        "unit_cost": Product.cost,
        "line_cost": Product.cost * OrderItem.quantity,
    },
    Entity.REFUNDS: {
        "id": Refund.id,
        "order_id": Refund.order_id,
        "amount": Refund.amount,
        "reason": Refund.reason,
        "created_at": Refund.created_at,
    },
    Entity.COUPONS: {
        "code": Coupon.code,
        "discount_type": Coupon.discount_type,
        "amount": Coupon.amount,
        "usage_count": Coupon.usage_count,
        "expires_at": Coupon.expires_at,
    },
    Entity.PRODUCTS: {
        "id": Product.id,
        "name": Product.name,
        "sku": Product.sku,
        "product_type": Product.product_type,
        "parent_id": Product.parent_id,
        "price": Product.price,
        "cost": Product.cost,
        "stock_quantity": Product.stock_quantity,
        "review_count": Product.review_count,
        "average_rating": Product.average_rating,
    },
    Entity.CUSTOMERS: {
        "id": Customer.id,
        "registered_at": Customer.registered_at,
        "country": Customer.country,
    },
    Entity.CART_ATTEMPTS: {
        "id": CartAttempt.id,
        "customer_id": CartAttempt.customer_id,
        "created_at": CartAttempt.created_at,
        "last_modified_at": CartAttempt.last_modified_at,
        "checkout_started_at": CartAttempt.checkout_started_at,
        "state": CartAttempt.state,
        "order_id": CartAttempt.order_id,
        "item_count": CartAttempt.item_count,
        "cart_total": CartAttempt.cart_total,
    },
}


class SQLAlchemyEventStore(EventStore):
    """
    Event store reading the commerce tables through SQLAlchemy.

    Parameters
    ----------
    session_factory:
        Zero-argument callable returning a new :class:`Session`
        (e.g. a ``sessionmaker``). The store never commits or writes.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

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

        pushed, residual = self._split_equals(entity, query_filter)
        stmt = self._where(entity, self._row_select(entity), pushed, window)

        rows = self._execute(entity, stmt, lambda s, st: s.execute(st).all())
        records = [_to_record(entity, row) for row in rows]

        if residual.equals:
            records = [r for r in records if residual.matches(entity, r)]
        return records

    def aggregate(
        self,
        entity: Entity,
        aggregate: Aggregate,
        group_by: str | None = None,
        query_filter: QueryFilter | None = None,
        window: TimeWindow | None = None,
    ) -> float | int | GroupedResult:
        self.check_aggregate(entity, aggregate, group_by)
        query_filter = query_filter or QueryFilter()
        window = window or TimeWindow.unbounded()
        query_filter.validate(entity)

        if window.is_empty or query_filter.matches_nothing:
            return reduce_records([], aggregate, group_by)

        columns = _COLUMNS[entity]
        pushed, residual = self._split_equals(entity, query_filter)
        pushable = (
            not residual.equals
            and (aggregate.field is None or aggregate.field in columns)
            and (group_by is None or group_by in columns)
        )
        if not pushable:
            return reduce_records(self.find(entity, query_filter, window), aggregate, group_by)

        value_expr = _aggregate_expression(aggregate, columns)
        if group_by is None:
            stmt = self._where(entity, self._from(entity, select(value_expr)), pushed, window)
            raw = self._execute(entity, stmt, lambda s, st: s.scalar(st))
            return _as_number(raw, aggregate)

        key_col = columns[group_by]
        stmt = self._where(
            entity,
            self._from(entity, select(key_col, value_expr)),
            pushed,
            window,
        ).group_by(key_col)
        rows = self._execute(entity, stmt, lambda s, st: s.execute(st).all())
        grouped = {key: _as_number(value, aggregate) for key, value in rows if key is not None}
        return {key: grouped[key] for key in sorted(grouped, key=str)}

    def probe(self) -> bool:
        """Run ``SELECT 1`` and verify every required table exists."""
        try:
            with self._session_factory() as session:
                session.execute(text("SELECT 1"))
                actual = set(sa_inspect(session.connection()).get_table_names())
        except SQLAlchemyError as exc:
            log_event(logger, logging.WARNING, "event_store_probe_failed", error=str(exc))
            return False

        missing = sorted(REQUIRED_TABLES - actual)
        if missing:
            log_event(logger, logging.WARNING, "event_store_tables_missing", missing=missing)
            return False
        return True

    # ------------------------------------------------------------------
    # Statement building
    # ------------------------------------------------------------------

    @staticmethod
    def _row_select(entity: Entity) -> Select:
        if entity is Entity.ORDER_ITEMS:
            return (
                select(
                    OrderItem,
                    Order.created_at,
                    Order.status,
                    Order.customer_id,
                    Product.categories,
                    Product.cost,
                )
                .select_from(OrderItem)
                .join(Order, OrderItem.order_id == Order.id)
                .outerjoin(Product, OrderItem.product_id == Product.id)
                .order_by(OrderItem.id)
            )
        model = _MODELS[entity]
        order_col = _COLUMNS[entity][ENTITY_SCHEMAS[entity].id_field]
        return select(model).order_by(order_col)

    @staticmethod
    def _from(entity: Entity, stmt: Select) -> Select:
        if entity is Entity.ORDER_ITEMS:
            return (
                stmt.select_from(OrderItem)
                .join(Order, OrderItem.order_id == Order.id)
                .outerjoin(Product, OrderItem.product_id == Product.id)
            )
        return stmt.select_from(_MODELS[entity])

    @staticmethod
    def _where(
        entity: Entity,
        stmt: Select,
        query_filter: QueryFilter,
        window: TimeWindow,
    ) -> Select:
        schema = ENTITY_SCHEMAS[entity]
        columns = _COLUMNS[entity]

        if schema.time_field is not None:
            time_col = columns[schema.time_field]
            if window.start is not None:
                stmt = stmt.where(time_col >= window.start)
            if window.end is not None:
                stmt = stmt.where(time_col < window.end)

        if query_filter.statuses is not None and schema.status_field is not None:
            stmt = stmt.where(columns[schema.status_field].in_(sorted(query_filter.statuses)))
        if query_filter.ids is not None:
            stmt = stmt.where(columns[schema.id_field].in_(sorted(query_filter.ids)))
        if query_filter.customer_ids is not None:
            stmt = stmt.where(columns["customer_id"].in_(sorted(query_filter.customer_ids)))
        if query_filter.product_ids is not None:
            stmt = stmt.where(columns["product_id"].in_(sorted(query_filter.product_ids)))
        for name, value in query_filter.equals:
            stmt = stmt.where(columns[name] == value)
        return stmt

    @staticmethod
    def _split_equals(entity: Entity, query_filter: QueryFilter) -> tuple[QueryFilter, QueryFilter]:
        """Separate equality predicates SQL can evaluate from derived ones."""
        columns = _COLUMNS[entity]
        pushed = tuple((k, v) for k, v in query_filter.equals if k in columns)
        residual = tuple((k, v) for k, v in query_filter.equals if k not in columns)
        return (
            QueryFilter(
                statuses=query_filter.statuses,
                ids=query_filter.ids,
                customer_ids=query_filter.customer_ids,
                product_ids=query_filter.product_ids,
                equals=pushed,
            ),
            QueryFilter(equals=residual),
        )

    def _execute(
        self,
        entity: Entity,
        stmt: Select,
        run: Callable[[Session, Select], Any],
    ) -> Any:
        try:
            with self._session_factory() as session:
                return run(session, stmt)
        except SQLAlchemyError as exc:
            log_event(
                logger,
                logging.ERROR,
                "event_store_query_failed",
                entity=entity.value,
                error=str(exc),
            )
            raise EventStoreQueryError(f"Query on {entity.value!r} failed: {exc}") from exc


# ---------------------------------------------------------------------------
# Module-level helpers
# ---------------------------------------------------------------------------

_MODELS: dict[Entity, type] = {
    Entity.ORDERS: Order,
    Entity.ORDER_ITEMS: OrderItem,
    Entity.REFUNDS: Refund,
    Entity.COUPONS: Coupon,
    Entity.PRODUCTS: Product,
    Entity.CUSTOMERS: Customer,
    Entity.CART_ATTEMPTS: CartAttempt,
}


def _aggregate_expression(aggregate: Aggregate, columns: dict[str, Any]) -> Any:
    if aggregate.kind is AggregateKind.COUNT:
        return func.count()
    column = columns[aggregate.field]  # type: ignore[index]
    if aggregate.kind is AggregateKind.COUNT_DISTINCT:
        return func.count(distinct(column))
    if aggregate.kind is AggregateKind.SUM:
        return func.coalesce(func.sum(column), 0)
    return func.avg(column)


def _as_number(raw: Any, aggregate: Aggregate) -> float | int:
    if raw is None:
        return aggregate.zero
    if aggregate.kind in (AggregateKind.COUNT, AggregateKind.COUNT_DISTINCT):
        return int(raw)
    if isinstance(raw, int) and aggregate.kind is AggregateKind.SUM:
        return raw if aggregate.unit != "currency" else float(raw)
    return float(raw)


def _money(value: Decimal | float | None) -> float:
    return float(value) if value is not None else 0.0


def _optional_money(value: Decimal | float | None) -> float | None:
    return float(value) if value is not None else None


def _utc(value: Any) -> Any:
    return as_utc(value) if value is not None else None


def _to_record(entity: Entity, row: Any) -> Any:
    if entity is Entity.ORDER_ITEMS:
        item, created_at, status, customer_id, categories, cost = row
        return OrderItemRecord(
            order_id=item.order_id,
            product_id=item.product_id,
            quantity=item.quantity,
            line_total=_money(item.line_total),
            unit_price=_money(item.unit_price),
            order_created_at=_utc(created_at),
            order_status=status,
            customer_id=customer_id,
            categories=tuple(categories or ()),
            unit_cost=_optional_money(cost),
        )

    obj = row[0]
    if entity is Entity.ORDERS:
        return OrderRecord(
            id=obj.id,
            status=obj.status,
            created_at=as_utc(obj.created_at),
            total=_money(obj.total),
            customer_id=obj.customer_id,
            paid_at=_utc(obj.paid_at),
            currency=obj.currency,
            tax_total=_money(obj.tax_total),
            shipping_total=_money(obj.shipping_total),
            discount_total=_money(obj.discount_total),
            refunded_total=_money(obj.refunded_total),
            payment_method=obj.payment_method,
            billing_country=obj.billing_country,
            coupon_codes=tuple(obj.coupon_codes or ()),
        )
    if entity is Entity.REFUNDS:
        return RefundRecord(
            id=obj.id,
            order_id=obj.order_id,
            amount=_money(obj.amount),
            created_at=as_utc(obj.created_at),
            reason=obj.reason,
        )
    if entity is Entity.COUPONS:
        return CouponRecord(
            code=obj.code,
            discount_type=obj.discount_type,
            amount=_money(obj.amount),
            usage_count=obj.usage_count,
            expires_at=_utc(obj.expires_at),
            product_ids=tuple(obj.product_ids or ()),
            category_ids=tuple(obj.category_ids or ()),
        )
    if entity is Entity.PRODUCTS:
        return ProductRecord(
            id=obj.id,
            price=_money(obj.price),
            name=obj.name,
            sku=obj.sku,
            product_type=obj.product_type,
            parent_id=obj.parent_id,
            cost=_optional_money(obj.cost),
            stock_quantity=obj.stock_quantity,
            categories=tuple(obj.categories or ()),
            tags=tuple(obj.tags or ()),
            review_count=obj.review_count,
            average_rating=float(obj.average_rating or 0.0),
        )
    if entity is Entity.CUSTOMERS:
        return CustomerRecord(
            id=obj.id,
            registered_at=as_utc(obj.registered_at),
            country=obj.country,
        )
    return CartAttemptRecord(
        id=obj.id,
        created_at=as_utc(obj.created_at),
        last_modified_at=as_utc(obj.last_modified_at),
        customer_id=obj.customer_id,
        checkout_started_at=_utc(obj.checkout_started_at),
        state=obj.state,
        order_id=obj.order_id,
        item_count=obj.item_count,
        cart_total=_money(obj.cart_total),
        line_items=tuple(obj.line_items or ()),
        applied_coupons=tuple(obj.applied_coupons or ()),
    )
