"""
db/models/order.py

Orders, their line items and refunds as written by the commerce platform.
This engine only reads these tables.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, Money


class OrderStatus:
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    REFUNDED = "refunded"
    FAILED = "failed"
    CANCELLED = "cancelled"
    ON_HOLD = "on-hold"

    ALL = frozenset(
        {PENDING, PROCESSING, COMPLETED, REFUNDED, FAILED, CANCELLED, ON_HOLD}
    )


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    customer_id: Mapped[str | None] = mapped_column(
        String(64),
        ForeignKey("customers.id"),
        nullable=True,
        comment="NULL for guest checkouts",
    )
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    total: Mapped[Decimal] = mapped_column(Money, nullable=False, default=0)
    tax_total: Mapped[Decimal] = mapped_column(Money, nullable=False, default=0)
    shipping_total: Mapped[Decimal] = mapped_column(Money, nullable=False, default=0)
    discount_total: Mapped[Decimal] = mapped_column(Money, nullable=False, default=0)
    refunded_total: Mapped[Decimal] = mapped_column(Money, nullable=False, default=0)
    payment_method: Mapped[str | None] = mapped_column(String(64), nullable=True)
    billing_country: Mapped[str | None] = mapped_column(
        String(2),
        nullable=True,
        comment="ISO 3166-1 alpha-2",
    )
    coupon_codes: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    __table_args__ = (
        CheckConstraint("total >= 0", name="ck_orders_total_non_negative"),
        CheckConstraint("refunded_total <= total", name="ck_orders_refund_within_total"),
        Index("ix_orders_status", "status"),
        Index("ix_orders_created_at", "created_at"),
        Index("ix_orders_customer_created_at", "customer_id", "created_at"),
    )


class OrderItem(Base):
    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
    )
    product_id: Mapped[str] = mapped_column(String(64), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    line_total: Mapped[Decimal] = mapped_column(Money, nullable=False, default=0)
    unit_price: Mapped[Decimal] = mapped_column(
        Money,
        nullable=False,
        default=0,
        comment="Unit price at time of sale",
    )

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_order_items_quantity_non_negative"),
        Index("ix_order_items_order_id", "order_id"),
        Index("ix_order_items_product_id", "product_id"),
    )


class Refund(Base):
    __tablename__ = "refunds"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False, default=0)
    reason: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_refunds_amount_non_negative"),
        Index("ix_refunds_order_id", "order_id"),
        Index("ix_refunds_created_at", "created_at"),
    )
