"""
db/models/cart_attempt.py

Cart / checkout sessions. Most never become an order; abandonment is the
steady state, not an error.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, Money


class CartState:
    CONVERTED = "converted"
    ABANDONED = "abandoned"
    FAILED = "failed"

    ALL = frozenset({CONVERTED, ABANDONED, FAILED})


class CartAttempt(Base):
    __tablename__ = "cart_attempts"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    customer_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_modified_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    checkout_started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Optional instrumentation; absent on stores that do not track it",
    )
    state: Mapped[str | None] = mapped_column(
        String(32),
        nullable=True,
        comment="converted, abandoned, failed; NULL while the session is open",
    )
    order_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    item_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cart_total: Mapped[Decimal] = mapped_column(Money, nullable=False, default=0)
    line_items: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    applied_coupons: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    __table_args__ = (
        Index("ix_cart_attempts_created_at", "created_at"),
        Index("ix_cart_attempts_state", "state"),
    )
