"""
Model package exports.

Import all SQLAlchemy models here so metadata registration works without
extra imports.
"""

from db.models.cart_attempt import CartAttempt, CartState
from db.models.catalog import Coupon, CouponDiscountType, Customer, Product, ProductType
from db.models.order import Order, OrderItem, OrderStatus, Refund

__all__ = [
    "Customer",
    "Product",
    "ProductType",
    "Coupon",
    "CouponDiscountType",
    "Order",
    "OrderItem",
    "OrderStatus",
    "Refund",
    "CartAttempt",
    "CartState",
]
