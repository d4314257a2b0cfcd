"""
db/models/catalog.py

Customers, products and coupons referenced by the order log.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, DateTime, Float, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, Money


class ProductType:
    SIMPLE = "simple"
    VARIABLE = "variable"
    VARIATION = "variation"


class CouponDiscountType:
    PERCENTAGE = "percentage"
    FIXED_CART = "fixed_cart"
    FIXED_PRODUCT = "fixed_product"


class Customer(Base):
    __tablename__ = "customers"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    registered_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    country: Mapped[str | None] = mapped_column(String(2), nullable=True)


class Product(Base):
    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    sku: Mapped[str | None] = mapped_column(String(120), nullable=True)
    product_type: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=ProductType.SIMPLE,
        comment="simple, variable, variation",
    )
    parent_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    price: Mapped[Decimal] = mapped_column(Money, nullable=False, default=0)
    cost: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    stock_quantity: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
        comment="NULL when stock is not managed",
    )
    categories: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    review_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    average_rating: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    __table_args__ = (Index("ix_products_parent_id", "parent_id"),)


class Coupon(Base):
    __tablename__ = "coupons"

    code: Mapped[str] = mapped_column(String(64), primary_key=True)
    discount_type: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="percentage, fixed_cart, fixed_product",
    )
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False, default=0)
    usage_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    product_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    category_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    metadata_json: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
