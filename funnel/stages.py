"""
funnel/stages.py

Per-attempt funnel state machine.

    started ──► checkout ──► completed
        │           │
        └───────────┴──────► abandoned | failed

Resolution rules
----------------
state == converted                      → completed
state == failed                         → failed
state == abandoned                      → abandoned
state is NULL, idle >= recovery window  → abandoned
state is NULL, idle <  recovery window  → open

An attempt reached checkout when it carries ``checkout_started_at`` or its
state implies a payment attempt (converted / failed). Without the optional
instrumentation field only those terminal states count, so
``completed <= checkout <= started`` holds in either case.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from db.models.cart_attempt import CartState
from store.query import as_utc
from store.records import CartAttemptRecord


class FunnelState:
    OPEN = "open"
    COMPLETED = "completed"
    ABANDONED = "abandoned"
    FAILED = "failed"


#: Ordered funnel stages used for step conversions.
STAGES: tuple[str, ...] = ("started", "checkout", "completed")

_TERMINAL: dict[str, str] = {
    CartState.CONVERTED: FunnelState.COMPLETED,
    CartState.FAILED: FunnelState.FAILED,
    CartState.ABANDONED: FunnelState.ABANDONED,
}

_PAYMENT_ATTEMPTED = frozenset({CartState.CONVERTED, CartState.FAILED})


def resolve_state(
    attempt: CartAttemptRecord,
    *,
    now: datetime,
    recovery_window: timedelta,
) -> str:
    """Terminal or open state of *attempt* as seen at *now*."""
    if attempt.state in _TERMINAL:
        return _TERMINAL[attempt.state]

    idle = as_utc(now) - as_utc(attempt.last_modified_at)
    if idle >= recovery_window:
        return FunnelState.ABANDONED
    return FunnelState.OPEN


def reached_checkout(attempt: CartAttemptRecord) -> bool:
    return attempt.checkout_started_at is not None or attempt.state in _PAYMENT_ATTEMPTED
